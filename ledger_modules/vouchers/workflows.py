"""
Voucher Workflow (``ledger_modules.vouchers.workflows``).

    PENDING --approve--> APPROVED --post--> POSTED
    PENDING/APPROVED --cancel--> CANCELLED

POSTED and CANCELLED are terminal.  Only ``post`` moves balances; a
cancelled voucher never produces a posted transaction.
"""

from ledger_kernel.domain.workflow import Guard, Transition, Workflow
from ledger_kernel.logging_config import get_logger
from ledger_modules.vouchers.models import VoucherStatus

logger = get_logger("modules.vouchers.workflows")

TRANSACTION_VALID = Guard(
    name="transaction_valid",
    description="Paired ledger transaction passes PostingEngine.validate",
)

_P, _A, _X, _C = (
    VoucherStatus.PENDING.value,
    VoucherStatus.APPROVED.value,
    VoucherStatus.POSTED.value,
    VoucherStatus.CANCELLED.value,
)

VOUCHER_WORKFLOW = Workflow(
    name="voucher",
    description="Voucher approval and posting",
    initial_state=_P,
    states=(_P, _A, _X, _C),
    terminal_states=(_X, _C),
    transitions=(
        Transition(_P, _A, action="approve"),
        Transition(_P, _C, action="cancel"),
        Transition(_A, _X, action="post", guard=TRANSACTION_VALID),
        Transition(_A, _C, action="cancel"),
    ),
)

logger.info(
    "voucher_workflow_registered",
    extra={
        "workflow_name": VOUCHER_WORKFLOW.name,
        "state_count": len(VOUCHER_WORKFLOW.states),
        "transition_count": len(VOUCHER_WORKFLOW.transitions),
    },
)
