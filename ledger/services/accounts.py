import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledger.models.ledger import Account

logger = logging.getLogger(__name__)


class AccountAccessError(Exception):
    """The caller does not own the account, or ownership could not be established."""


def get_owned_account(db: Session, user_id: int, account_id: int) -> Account:
    try:
        account = db.scalar(select(Account).where(Account.id == account_id, Account.user_id == user_id))
    except SQLAlchemyError as exc:
        raise AccountAccessError("Account ownership check failed") from exc
    if account is None:
        logger.info("Denied access to account %s for user %s", account_id, user_id)
        raise AccountAccessError("Account not found or unauthorized")
    return account


def list_owned_account_ids(db: Session, user_id: int) -> list[int]:
    try:
        return list(db.scalars(select(Account.id).where(Account.user_id == user_id).order_by(Account.id)).all())
    except SQLAlchemyError as exc:
        raise AccountAccessError("Account listing failed") from exc
