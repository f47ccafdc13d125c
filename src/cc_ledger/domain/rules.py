"""Pure balance/limit rules. Every function either returns the new state or raises.

Invariant: 0 <= current_balance <= credit_limit for every account.
"""

from src.cc_common.enums import AdjustDirection
from src.cc_common.errors import CreditLimitExceededError, NotEligibleError, ValidationError
from src.cc_common.money import require_positive
from src.cc_ledger.domain.models import CreditAccount


def check_new_limit(account: CreditAccount | None, new_limit: int) -> None:
    require_positive(new_limit, "credit_limit")
    if account is not None and new_limit < account.current_balance:
        raise ValidationError(
            f"credit_limit {new_limit} is below outstanding balance {account.current_balance}"
        )


def balance_after_adjust(account: CreditAccount, delta: int, direction: AdjustDirection) -> int:
    """Balance after a manual CREDIT/DEBIT. Debits clamp at zero."""
    require_positive(delta, "delta")
    if not account.is_eligible:
        raise NotEligibleError(account.player_id)
    if direction == AdjustDirection.CREDIT:
        would_be = account.current_balance + delta
        if would_be > account.credit_limit:
            raise CreditLimitExceededError(account.player_id, account.credit_limit, would_be)
        return would_be
    return max(0, account.current_balance - delta)


def assert_invariant(account: CreditAccount) -> None:
    assert 0 <= account.current_balance <= account.credit_limit, (
        f"Ledger invariant violated for {account.player_id}: "
        f"balance={account.current_balance} limit={account.credit_limit}"
    )
