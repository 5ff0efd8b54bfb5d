"""Shared query parameter parsing utilities."""

from fastapi import HTTPException

VALID_PERIODS = ("1M", "3M", "QTD", "YTD", "1Y", "3Y", "LQ", "LY")


def parse_periods(periods: str | None) -> list[str]:
    """Parse a comma-separated return periods string into a validated list.

    Args:
        periods: Comma-separated period codes (e.g. "1M,YTD"), or None.

    Returns:
        List of uppercase period codes; every valid period when input is empty.

    Raises:
        HTTPException: If any code is not a recognised period.
    """
    if not periods:
        return list(VALID_PERIODS)
    result = []
    for period in periods.split(","):
        period = period.strip().upper()
        if not period:
            continue
        if period not in VALID_PERIODS:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid period: {period}. Valid: {', '.join(VALID_PERIODS)}",
            )
        result.append(period)
    return result if result else list(VALID_PERIODS)
