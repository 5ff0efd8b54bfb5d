"""Service for managing Security records."""

import logging

from sqlalchemy.orm import Session

from models import Security
from services.exceptions import InvalidArgumentError
from utils.ticker import normalize_ticker

logger = logging.getLogger(__name__)


class SecurityService:
    """Centralized operations on the Security master list."""

    @staticmethod
    def ensure_exists(db: Session, ticker: str) -> Security:
        """Ensure a Security record exists for the given ticker.

        The ticker is normalized first, so "aapl " and "AAPL" resolve to
        the same record. A new security is named after its ticker.

        Returns:
            The Security record (flushed but not committed)
        """
        try:
            ticker = normalize_ticker(ticker)
        except ValueError as exc:
            raise InvalidArgumentError(str(exc)) from exc

        security = db.query(Security).filter_by(ticker=ticker).first()

        if not security:
            security = Security(ticker=ticker, name=ticker)
            db.add(security)
            db.flush()
            logger.info("Created security: %s", ticker)

        return security
