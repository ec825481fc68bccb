"""
Billing Workflows (``ledger_modules.billing.workflows``).

Invoice and bill status is derived, never set: after every mutation the
service recomputes it from payments, due date and lifecycle flags.  These
workflows declare which *actions* each derived status admits.  A
transition's ``to_state`` names the usual outcome; the persisted status is
always the derived one.

CANCELLED is terminal.  PAID admits only ``remove_payment`` (a correction)
and ``view``, except for a zero-total document with no payments, which may
still be edited, sent or cancelled (guard ``no_payments_recorded``).  Lines
are editable only while no payment is recorded.
"""

from ledger_engines.document_status import BillStatus, InvoiceStatus
from ledger_kernel.domain.workflow import Guard, Transition, Workflow
from ledger_kernel.logging_config import get_logger

logger = get_logger("modules.billing.workflows")

NO_PAYMENTS_RECORDED = Guard(
    name="no_payments_recorded",
    description="Document has no payments applied",
)

PAYMENT_WITHIN_POLICY = Guard(
    name="payment_within_policy",
    description="Payment does not exceed amount due unless overpayment is allowed",
)


def _same(states, action, guard=None):
    return tuple(Transition(s, s, action=action, guard=guard) for s in states)


_I = InvoiceStatus

INVOICE_WORKFLOW = Workflow(
    name="invoice",
    description="Customer invoice lifecycle",
    initial_state=_I.DRAFT.value,
    states=tuple(s.value for s in _I),
    terminal_states=(_I.CANCELLED.value,),
    transitions=(
        Transition(_I.DRAFT.value, _I.SENT.value, action="send"),
        Transition(_I.PAID.value, _I.SENT.value, action="send", guard=NO_PAYMENTS_RECORDED),
        *_same((_I.SENT.value, _I.VIEWED.value, _I.PARTIAL.value, _I.OVERDUE.value), "send"),
        Transition(_I.SENT.value, _I.VIEWED.value, action="view"),
        *_same((_I.VIEWED.value, _I.PARTIAL.value, _I.OVERDUE.value, _I.PAID.value), "view"),
        *(
            Transition(s.value, _I.PAID.value, action="pay", guard=PAYMENT_WITHIN_POLICY)
            for s in (_I.DRAFT, _I.SENT, _I.VIEWED, _I.PARTIAL, _I.OVERDUE)
        ),
        Transition(_I.PAID.value, _I.PARTIAL.value, action="remove_payment"),
        Transition(_I.PARTIAL.value, _I.SENT.value, action="remove_payment"),
        Transition(_I.OVERDUE.value, _I.OVERDUE.value, action="remove_payment"),
        *_same((_I.DRAFT.value, _I.SENT.value, _I.VIEWED.value), "edit_lines"),
        *_same((_I.OVERDUE.value, _I.PAID.value), "edit_lines", guard=NO_PAYMENTS_RECORDED),
        *(
            Transition(s.value, _I.CANCELLED.value, action="cancel")
            for s in (_I.DRAFT, _I.SENT, _I.VIEWED, _I.PARTIAL, _I.OVERDUE)
        ),
        Transition(_I.PAID.value, _I.CANCELLED.value, action="cancel", guard=NO_PAYMENTS_RECORDED),
    ),
)

_B = BillStatus

BILL_WORKFLOW = Workflow(
    name="bill",
    description="Vendor bill lifecycle",
    initial_state=_B.DRAFT.value,
    states=tuple(s.value for s in _B),
    terminal_states=(_B.CANCELLED.value,),
    transitions=(
        Transition(_B.DRAFT.value, _B.PENDING.value, action="submit"),
        Transition(_B.OVERDUE.value, _B.OVERDUE.value, action="submit"),
        Transition(_B.PAID.value, _B.PAID.value, action="submit", guard=NO_PAYMENTS_RECORDED),
        *(
            Transition(s.value, _B.PAID.value, action="pay", guard=PAYMENT_WITHIN_POLICY)
            for s in (_B.DRAFT, _B.PENDING, _B.PARTIAL, _B.OVERDUE)
        ),
        Transition(_B.PAID.value, _B.PARTIAL.value, action="remove_payment"),
        Transition(_B.PARTIAL.value, _B.PENDING.value, action="remove_payment"),
        Transition(_B.OVERDUE.value, _B.OVERDUE.value, action="remove_payment"),
        *_same((_B.DRAFT.value, _B.PENDING.value), "edit_lines"),
        *_same((_B.OVERDUE.value, _B.PAID.value), "edit_lines", guard=NO_PAYMENTS_RECORDED),
        *(
            Transition(s.value, _B.CANCELLED.value, action="cancel")
            for s in (_B.DRAFT, _B.PENDING, _B.PARTIAL, _B.OVERDUE)
        ),
        Transition(_B.PAID.value, _B.CANCELLED.value, action="cancel", guard=NO_PAYMENTS_RECORDED),
    ),
)

for _wf in (INVOICE_WORKFLOW, BILL_WORKFLOW):
    logger.info(
        "billing_workflow_registered",
        extra={
            "workflow_name": _wf.name,
            "state_count": len(_wf.states),
            "transition_count": len(_wf.transitions),
        },
    )
