"""Lifecycle definitions for ledger transactions and transaction groups.

    PENDING --post--> POSTED --reverse--> REVERSED
    PENDING --delete--> (removed, no trace)

POSTED and REVERSED records are permanent; REVERSED is terminal.
"""

from ledger_kernel.domain.ledger import TransactionStatus
from ledger_kernel.domain.workflow import Guard, Transition, Workflow

BALANCED = Guard(
    name="balanced",
    description="Sum of debit legs equals sum of credit legs",
)

VALIDATION_PASSED = Guard(
    name="validation_passed",
    description="Accounts exist and are active, legs distinct, amount positive",
)

_STATES = tuple(s.value for s in TransactionStatus)

TRANSACTION_LIFECYCLE = Workflow(
    name="ledger_transaction",
    description="Single ledger movement lifecycle",
    initial_state=TransactionStatus.PENDING.value,
    states=_STATES,
    transitions=(
        Transition(TransactionStatus.PENDING.value, TransactionStatus.POSTED.value,
                   action="post", guard=VALIDATION_PASSED),
        Transition(TransactionStatus.POSTED.value, TransactionStatus.REVERSED.value,
                   action="reverse"),
    ),
    terminal_states=(TransactionStatus.REVERSED.value,),
)

GROUP_LIFECYCLE = Workflow(
    name="ledger_transaction_group",
    description="Journal entry posted and reversed as one atomic unit",
    initial_state=TransactionStatus.PENDING.value,
    states=_STATES,
    transitions=(
        Transition(TransactionStatus.PENDING.value, TransactionStatus.POSTED.value,
                   action="post", guard=BALANCED),
        Transition(TransactionStatus.POSTED.value, TransactionStatus.REVERSED.value,
                   action="reverse", guard=BALANCED),
    ),
    terminal_states=(TransactionStatus.REVERSED.value,),
)
