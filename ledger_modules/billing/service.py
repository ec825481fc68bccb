"""
Billing Module Service (``ledger_modules.billing.service``).

Responsibility
--------------
Invoice and bill lifecycle: line maintenance, sending/viewing/submitting,
payments and cancellation.  After every mutation the document's totals,
``amount_paid``, ``amount_due`` and ``status`` are recomputed from its
lines, payments, due date and lifecycle flags.

Architecture position
---------------------
**Modules layer**.  ``InvoiceService`` and ``BillService`` are the public
entry points.  Totals come from ``ledger_engines.document_totals``, status
from ``ledger_engines.document_status``; any ledger effect of a payment is
delegated to the kernel ``PostingEngine``.

Invariants enforced
-------------------
* ``amount_paid == sum(payments)`` and ``amount_due == total - amount_paid``
  after every mutation.  Overpayment is kept visible as a negative
  ``amount_due``; it is never clamped.
* Payment rows are append-only.  A correction deletes the payment and, if
  it was posted, reverses its ledger transaction.
* Cancellation is a flag: applied payments are retained and nothing in
  the ledger is reversed.

Failure modes
-------------
* ``InvalidStateTransitionError`` -- action not admitted by the document's
  current (re-derived) status.
* ``OverpaymentNotAllowedError`` -- payment exceeds ``amount_due`` while the
  overpayment policy is off.
* ``PostingValidationError`` -- payment amount not positive or too precise
  for the currency, or its ledger transaction failed validation.
* ``DocumentNotFoundError`` / ``PaymentNotFoundError``.

Audit relevance
---------------
invoice_created / bill_created / payment_applied / payment_deleted /
document_cancelled / document_status_changed are logged with the acting
user; state changes are emitted as domain events after commit.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Sequence
from uuid import UUID, uuid4

from sqlalchemy import select

from ledger_engines.document_status import (
    BillStatus,
    DocumentStatusInputs,
    InvoiceStatus,
    derive_bill_status,
    derive_invoice_status,
)
from ledger_engines.document_totals import (
    DocumentTotals,
    LineAmounts,
    compute_bill_totals,
    compute_invoice_totals,
)
from ledger_kernel.domain.currency import CurrencyRegistry, fits_minor_units
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    DocumentNotFoundError,
    InvalidLineItemError,
    InvalidStateTransitionError,
    OverpaymentNotAllowedError,
    PaymentNotFoundError,
    PostingValidationError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import LedgerAccount
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.posting_engine import PostingEngine
from ledger_kernel.services.sequence_service import SequenceService
from ledger_modules.billing.config import BillingConfig
from ledger_modules.billing.models import LineItemInput, OperationResult, PaymentMethod
from ledger_modules.billing.orm import (
    BillLineModel,
    BillModel,
    BillPaymentModel,
    InvoiceLineModel,
    InvoiceModel,
    InvoicePaymentModel,
)
from ledger_modules.billing.workflows import (
    BILL_WORKFLOW,
    INVOICE_WORKFLOW,
    NO_PAYMENTS_RECORDED,
    PAYMENT_WITHIN_POLICY,
)

logger = get_logger("modules.billing.service")

_ZERO = Decimal("0")


class _DocumentService(BaseService):
    """
    Shared invoice/bill mechanics.

    Subclasses name their ORM classes, workflow and ledger legs; everything
    that touches payments, lines, cancellation and status lives here.
    """

    entity_type: str
    event_prefix: str
    model: type
    line_model: type
    payment_model: type
    workflow = None
    settlement_field: str
    terminal_statuses: tuple = ()

    def __init__(
        self,
        session,
        clock=None,
        event_bus=None,
        config: BillingConfig | None = None,
        base_currency: str = "USD",
        posting_engine: PostingEngine | None = None,
    ):
        super().__init__(session, clock, event_bus)
        self._config = config or BillingConfig()
        self._base_currency = CurrencyRegistry.validate(base_currency)
        self._engine = posting_engine or PostingEngine(session, self._clock, event_bus)
        self._sequences = SequenceService(session)

    # -- hooks --------------------------------------------------------------

    def _compute_totals(self, doc) -> DocumentTotals:
        raise NotImplementedError

    def _derive_status(self, doc, today: date):
        raise NotImplementedError

    def _payment_legs(self, doc, settlement_account_id: UUID | None) -> dict | None:
        raise NotImplementedError

    def _line_values(self, line: LineItemInput) -> dict:
        raise NotImplementedError

    # -- lines --------------------------------------------------------------

    def add_line(self, document_id: UUID, line: LineItemInput, actor_id: UUID):
        doc = self._load_for_update(document_id)
        self._refresh(doc)
        self._require(doc, "edit_lines")
        next_number = max((existing.line_number for existing in doc.lines), default=0) + 1
        doc.lines.append(
            self.line_model(line_number=next_number, created_by_id=actor_id, **self._line_values(line))
        )
        self._touch(doc, actor_id)
        logger.info(
            "document_line_added",
            extra={"document_id": str(doc.id), "line_number": next_number, "actor_id": str(actor_id)},
        )
        return doc

    def update_line(self, document_id: UUID, line_number: int, line: LineItemInput, actor_id: UUID):
        doc = self._load_for_update(document_id)
        self._refresh(doc)
        self._require(doc, "edit_lines")
        existing = self._find_line(doc, line_number)
        for field, value in self._line_values(line).items():
            setattr(existing, field, value)
        existing.updated_by_id = actor_id
        self._touch(doc, actor_id)
        logger.info(
            "document_line_updated",
            extra={"document_id": str(doc.id), "line_number": line_number, "actor_id": str(actor_id)},
        )
        return doc

    def remove_line(self, document_id: UUID, line_number: int, actor_id: UUID):
        doc = self._load_for_update(document_id)
        self._refresh(doc)
        self._require(doc, "edit_lines")
        doc.lines.remove(self._find_line(doc, line_number))
        self._touch(doc, actor_id)
        logger.info(
            "document_line_removed",
            extra={"document_id": str(doc.id), "line_number": line_number, "actor_id": str(actor_id)},
        )
        return doc

    # -- payments -----------------------------------------------------------

    def apply_payment(
        self,
        document_id: UUID,
        amount: Decimal,
        payment_date: date,
        payment_method: PaymentMethod | str,
        actor_id: UUID,
        reference: str | None = None,
        account_id: UUID | None = None,
    ):
        """
        Record a payment and re-derive the document.

        When the document carries a receivable/payable account and
        ``account_id`` names the pay-in/pay-out account, a ledger
        transaction is created and posted in the same SAVEPOINT as the
        payment row.

        Raises:
            TypeError: ``amount`` is not a Decimal.
            PostingValidationError: amount not positive or too precise.
            InvalidStateTransitionError: document is CANCELLED or fully PAID.
            OverpaymentNotAllowedError: reject-overpayment policy tripped.
        """
        if not isinstance(amount, Decimal):
            raise TypeError(f"amount must be Decimal, got {type(amount).__name__}")
        payment_method = PaymentMethod(payment_method)
        doc = self._load_for_update(document_id)
        self._refresh(doc)

        if amount <= 0:
            raise PostingValidationError(str(doc.id), ["amount_not_positive"])
        if not fits_minor_units(amount, doc.currency):
            raise PostingValidationError(str(doc.id), ["amount_precision_exceeds_currency"])
        self._require(doc, "pay", amount=amount)
        if account_id is not None and self.session.get(LedgerAccount, account_id) is None:
            raise AccountNotFoundError(str(account_id))

        with self.session.begin_nested():
            transaction_id = None
            legs = self._payment_legs(doc, account_id)
            if legs is not None:
                txn = self._engine.create_transaction(
                    transaction_date=payment_date,
                    description=f"Payment on {doc.document_number}",
                    amount=amount,
                    currency=doc.currency,
                    actor_id=actor_id,
                    reference=doc.document_number,
                    owner_type=self.entity_type,
                    **legs,
                )
                self._engine.post(txn.id, actor_id, owner_type=self.entity_type)
                transaction_id = txn.id

            payment = self.payment_model(
                amount=amount,
                payment_date=payment_date,
                payment_method=payment_method,
                reference=reference,
                ledger_transaction_id=transaction_id,
                created_by_id=actor_id,
                **{self.settlement_field: account_id},
            )
            doc.payments.append(payment)
            self._touch(doc, actor_id)

        logger.info(
            "payment_applied",
            extra={
                "document_id": str(doc.id),
                "document_number": doc.document_number,
                "payment_id": str(payment.id),
                "amount": str(amount),
                "amount_paid": str(doc.amount_paid),
                "amount_due": str(doc.amount_due),
                "status": doc.status.value,
                "ledger_transaction_id": str(transaction_id) if transaction_id else None,
                "actor_id": str(actor_id),
            },
        )
        self._emit(
            f"{self.event_prefix}.payment_applied", self.entity_type, doc.id,
            payment_id=str(payment.id), amount=str(amount), status=doc.status.value,
        )
        return payment

    def delete_payment(self, document_id: UUID, payment_id: UUID, actor_id: UUID):
        """
        Remove a payment, reversing its ledger transaction if it had one.

        Raises:
            PaymentNotFoundError: the payment is not on this document.
            InvalidStateTransitionError: document is CANCELLED.
        """
        doc = self._load_for_update(document_id)
        self._refresh(doc)
        payment = next((p for p in doc.payments if p.id == payment_id), None)
        if payment is None:
            raise PaymentNotFoundError(str(payment_id))
        self._require(doc, "remove_payment")

        with self.session.begin_nested():
            if payment.ledger_transaction_id is not None:
                self._engine.reverse(payment.ledger_transaction_id, actor_id, owner_type=self.entity_type)
            doc.payments.remove(payment)
            self._touch(doc, actor_id)

        logger.info(
            "payment_deleted",
            extra={
                "document_id": str(doc.id),
                "payment_id": str(payment_id),
                "amount": str(payment.amount),
                "amount_due": str(doc.amount_due),
                "status": doc.status.value,
                "actor_id": str(actor_id),
            },
        )
        return doc

    # -- lifecycle ----------------------------------------------------------

    def cancel(self, document_id: UUID, actor_id: UUID) -> OperationResult:
        """
        Flag the document CANCELLED.  Payments stay for audit.

        Returns ``no_op=True`` when the document is already cancelled.
        """
        doc = self._load_for_update(document_id)
        if doc.cancelled_at is not None:
            logger.info(
                "document_operation_no_op",
                extra={"document_id": str(doc.id), "status": doc.status.value, "action": "cancel"},
            )
            return OperationResult(doc.id, doc.status.value, no_op=True,
                                   message=f"{self.entity_type.lower()} already CANCELLED")
        self._refresh(doc)
        self._require(doc, "cancel")
        doc.cancelled_at = self._clock.now()
        self._touch(doc, actor_id)

        logger.info(
            "document_cancelled",
            extra={
                "document_type": self.entity_type,
                "document_id": str(doc.id),
                "document_number": doc.document_number,
                "payments_retained": len(doc.payments),
                "actor_id": str(actor_id),
            },
        )
        self._emit(f"{self.event_prefix}.cancelled", self.entity_type, doc.id,
                   document_number=doc.document_number)
        return OperationResult(doc.id, doc.status.value)

    def refresh_status(self, as_of: date | None = None) -> list[OperationResult]:
        """
        Periodic overdue check: re-derive every open document as of ``as_of``.

        Returns one result per document whose status changed.
        """
        as_of = as_of or self._clock.today()
        open_docs = self.session.execute(
            select(self.model)
            .where(self.model.status.notin_(self.terminal_statuses))
            .order_by(self.model.due_date)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalars().all()

        changed = []
        for doc in open_docs:
            before = doc.status
            self._recompute(doc, as_of)
            if doc.status is not before:
                changed.append(OperationResult(doc.id, doc.status.value))
        self.session.flush()

        logger.info(
            "document_statuses_refreshed",
            extra={
                "document_type": self.entity_type,
                "as_of": as_of.isoformat(),
                "checked": len(open_docs),
                "changed": len(changed),
            },
        )
        return changed

    # -- internals ----------------------------------------------------------

    def _get(self, document_id: UUID):
        doc = self.session.get(self.model, document_id)
        if doc is None:
            raise DocumentNotFoundError(str(document_id))
        return doc

    def _list(self, status, order_by):
        stmt = select(self.model).order_by(*order_by)
        if status is not None:
            stmt = stmt.where(self.model.status == status)
        return list(self.session.execute(stmt).scalars().all())

    def _load_for_update(self, document_id: UUID):
        doc = self.session.execute(
            select(self.model)
            .where(self.model.id == document_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if doc is None:
            raise DocumentNotFoundError(str(document_id))
        return doc

    def _require(self, doc, action: str, amount: Decimal | None = None) -> None:
        """Reject ``action`` unless the workflow admits it and its guard holds."""
        transition = self.workflow.transition_for(doc.status.value, action)
        allowed = transition is not None and not (
            transition.guard is NO_PAYMENTS_RECORDED and doc.payments
        )
        if not allowed:
            logger.info(
                "document_transition_rejected",
                extra={"document_id": str(doc.id), "status": doc.status.value, "action": action},
            )
            raise InvalidStateTransitionError(self.entity_type, str(doc.id), doc.status.value, action)
        if transition.guard is PAYMENT_WITHIN_POLICY and not self._config.allow_overpayment:
            if amount is None or amount > doc.amount_due:
                logger.warning(
                    "overpayment_rejected",
                    extra={
                        "document_id": str(doc.id),
                        "amount_due": str(doc.amount_due),
                        "payment_amount": str(amount),
                    },
                )
                raise OverpaymentNotAllowedError(str(doc.id), doc.amount_due, amount)

    def _find_line(self, doc, line_number: int):
        for line in doc.lines:
            if line.line_number == line_number:
                return line
        raise InvalidLineItemError("line_number", line_number, f"no such line on {doc.document_number}")

    def _new_lines(self, lines: Sequence[LineItemInput], actor_id: UUID) -> list:
        return [
            self.line_model(line_number=number, created_by_id=actor_id, **self._line_values(line))
            for number, line in enumerate(lines, start=1)
        ]

    def _check_header(self, issue_date: date, due_date: date, account_id: UUID | None) -> None:
        if due_date < issue_date:
            raise ValueError(f"due_date {due_date} precedes issue_date {issue_date}")
        if account_id is not None and self.session.get(LedgerAccount, account_id) is None:
            raise AccountNotFoundError(str(account_id))

    def _refresh(self, doc) -> None:
        self._recompute(doc, self._clock.today())

    def _touch(self, doc, actor_id: UUID) -> None:
        doc.updated_by_id = actor_id
        self._refresh(doc)
        self.session.flush()

    def _recompute(self, doc, today: date) -> None:
        totals = self._compute_totals(doc)
        doc.subtotal = totals.subtotal.amount
        doc.tax_amount = totals.tax_amount.amount
        doc.total_amount = totals.total_amount.amount
        if hasattr(doc, "discount_amount"):
            doc.discount_amount = totals.discount_amount.amount
        doc.amount_paid = sum((p.amount for p in doc.payments), _ZERO)
        doc.amount_due = doc.total_amount - doc.amount_paid

        status = self._derive_status(doc, today)
        if status is not doc.status:
            logger.debug(
                "document_status_changed",
                extra={
                    "document_id": str(doc.id),
                    "from_status": doc.status.value,
                    "to_status": status.value,
                },
            )
            doc.status = status

    def _status_inputs(self, doc, today: date, **flags) -> DocumentStatusInputs:
        return DocumentStatusInputs(
            total_amount=doc.total_amount,
            amount_paid=doc.amount_paid,
            due_date=doc.due_date,
            today=today,
            cancelled=doc.cancelled_at is not None,
            **flags,
        )


class InvoiceService(_DocumentService):
    """
    Billing Document Engine for customer invoices.

    Contract
    --------
    Runs inside the caller's transaction and flushes; never commits.

    Guarantees
    ----------
    * ``status`` is always ``derive_invoice_status`` of the current state.
    * A payment is posted to the ledger (debit pay-in, credit receivable)
      only when both accounts are known.

    Non-goals
    ---------
    * No PDF, email or notification delivery; subscribers of
      ``invoice.sent`` handle that after commit.
    """

    entity_type = "Invoice"
    event_prefix = "invoice"
    model = InvoiceModel
    line_model = InvoiceLineModel
    payment_model = InvoicePaymentModel
    workflow = INVOICE_WORKFLOW
    settlement_field = "pay_in_account_id"
    terminal_statuses = (InvoiceStatus.CANCELLED, InvoiceStatus.PAID)

    def create_invoice(
        self,
        client_id: UUID,
        issue_date: date,
        due_date: date,
        lines: Sequence[LineItemInput],
        actor_id: UUID,
        currency: str | None = None,
        notes: str | None = None,
        purchase_order_number: str | None = None,
        receivable_account_id: UUID | None = None,
    ) -> InvoiceModel:
        """
        Create a DRAFT invoice with its lines and derived totals.

        Raises:
            ValueError: ``due_date`` precedes ``issue_date``.
            AccountNotFoundError: unknown receivable account.
        """
        self._check_header(issue_date, due_date, receivable_account_id)
        invoice = InvoiceModel(
            id=uuid4(),
            number_prefix=self._config.invoice_number_prefix,
            number=self._sequences.next_value("invoice"),
            client_id=client_id,
            issue_date=issue_date,
            due_date=due_date,
            currency=CurrencyRegistry.validate(currency or self._base_currency),
            notes=notes,
            purchase_order_number=purchase_order_number,
            receivable_account_id=receivable_account_id,
            status=InvoiceStatus.DRAFT,
            lines=self._new_lines(lines, actor_id),
            created_by_id=actor_id,
        )
        self.session.add(invoice)
        self._touch(invoice, actor_id)

        logger.info(
            "invoice_created",
            extra={
                "invoice_id": str(invoice.id),
                "invoice_number": invoice.invoice_number,
                "client_id": str(client_id),
                "line_count": len(invoice.lines),
                "total_amount": str(invoice.total_amount),
                "currency": invoice.currency,
                "actor_id": str(actor_id),
            },
        )
        return invoice

    def get_invoice(self, invoice_id: UUID) -> InvoiceModel:
        return self._get(invoice_id)

    def list_invoices(self, status: InvoiceStatus | None = None) -> list[InvoiceModel]:
        status = InvoiceStatus(status) if status is not None else None
        return self._list(status, (InvoiceModel.issue_date, InvoiceModel.number))

    def send_invoice(self, invoice_id: UUID, actor_id: UUID) -> OperationResult:
        """Mark the invoice sent.  Re-sending keeps the first ``sent_at``."""
        invoice = self._load_for_update(invoice_id)
        self._refresh(invoice)
        self._require(invoice, "send")
        if invoice.sent_at is None:
            invoice.sent_at = self._clock.now()
        self._touch(invoice, actor_id)

        logger.info(
            "invoice_sent",
            extra={"invoice_id": str(invoice.id), "invoice_number": invoice.invoice_number,
                   "status": invoice.status.value, "actor_id": str(actor_id)},
        )
        self._emit("invoice.sent", "Invoice", invoice.id, invoice_number=invoice.invoice_number)
        return OperationResult(invoice.id, invoice.status.value)

    def mark_viewed(self, invoice_id: UUID, actor_id: UUID) -> OperationResult:
        """Record the client's first view of a sent invoice."""
        invoice = self._load_for_update(invoice_id)
        if invoice.viewed_at is not None:
            return OperationResult(invoice.id, invoice.status.value, no_op=True,
                                   message="invoice already viewed")
        self._refresh(invoice)
        if invoice.sent_at is None:
            raise InvalidStateTransitionError("Invoice", str(invoice.id), invoice.status.value, "view")
        self._require(invoice, "view")
        invoice.viewed_at = self._clock.now()
        self._touch(invoice, actor_id)

        logger.info(
            "invoice_viewed",
            extra={"invoice_id": str(invoice.id), "invoice_number": invoice.invoice_number},
        )
        self._emit("invoice.viewed", "Invoice", invoice.id, invoice_number=invoice.invoice_number)
        return OperationResult(invoice.id, invoice.status.value)

    def _compute_totals(self, doc: InvoiceModel) -> DocumentTotals:
        return compute_invoice_totals(
            lines=[
                LineAmounts(line.quantity, line.unit_price, line.tax_rate, line.discount_percent)
                for line in doc.lines
            ],
            currency=doc.currency,
        )

    def _derive_status(self, doc: InvoiceModel, today: date) -> InvoiceStatus:
        return derive_invoice_status(
            self._status_inputs(doc, today, sent=doc.sent_at is not None,
                                viewed=doc.viewed_at is not None)
        )

    def _payment_legs(self, doc: InvoiceModel, settlement_account_id: UUID | None) -> dict | None:
        if doc.receivable_account_id is None or settlement_account_id is None:
            return None
        return {
            "debit_account_id": settlement_account_id,
            "credit_account_id": doc.receivable_account_id,
        }

    def _line_values(self, line: LineItemInput) -> dict:
        return {
            "description": line.description,
            "quantity": line.quantity,
            "unit_price": line.unit_price,
            "tax_rate": line.tax_rate,
            "discount_percent": line.discount_percent,
        }


class BillService(_DocumentService):
    """
    Billing Document Engine for vendor bills.

    Contract
    --------
    Runs inside the caller's transaction and flushes; never commits.

    Guarantees
    ----------
    * ``status`` is always ``derive_bill_status`` of the current state.
    * A payment is posted to the ledger (debit payable, credit pay-out)
      only when both accounts are known.
    """

    entity_type = "Bill"
    event_prefix = "bill"
    model = BillModel
    line_model = BillLineModel
    payment_model = BillPaymentModel
    workflow = BILL_WORKFLOW
    settlement_field = "pay_out_account_id"
    terminal_statuses = (BillStatus.CANCELLED, BillStatus.PAID)

    def create_bill(
        self,
        vendor_id: UUID,
        issue_date: date,
        due_date: date,
        lines: Sequence[LineItemInput],
        actor_id: UUID,
        currency: str | None = None,
        notes: str | None = None,
        payable_account_id: UUID | None = None,
        bill_number: str | None = None,
    ) -> BillModel:
        """
        Create a DRAFT bill.  ``bill_number`` defaults to the next
        ``BILL-000001``-style number.

        Raises:
            InvalidLineItemError: a line carries a discount.
            ValueError: ``due_date`` precedes ``issue_date``.
            AccountNotFoundError: unknown payable account.
        """
        self._check_header(issue_date, due_date, payable_account_id)
        bill = BillModel(
            id=uuid4(),
            bill_number=bill_number or self._sequences.next_number("bill", self._config.bill_number_prefix),
            vendor_id=vendor_id,
            issue_date=issue_date,
            due_date=due_date,
            currency=CurrencyRegistry.validate(currency or self._base_currency),
            notes=notes,
            payable_account_id=payable_account_id,
            status=BillStatus.DRAFT,
            lines=self._new_lines(lines, actor_id),
            created_by_id=actor_id,
        )
        self.session.add(bill)
        self._touch(bill, actor_id)

        logger.info(
            "bill_created",
            extra={
                "bill_id": str(bill.id),
                "bill_number": bill.bill_number,
                "vendor_id": str(vendor_id),
                "line_count": len(bill.lines),
                "total_amount": str(bill.total_amount),
                "currency": bill.currency,
                "actor_id": str(actor_id),
            },
        )
        return bill

    def get_bill(self, bill_id: UUID) -> BillModel:
        return self._get(bill_id)

    def list_bills(self, status: BillStatus | None = None) -> list[BillModel]:
        status = BillStatus(status) if status is not None else None
        return self._list(status, (BillModel.issue_date, BillModel.bill_number))

    def submit_bill(self, bill_id: UUID, actor_id: UUID) -> OperationResult:
        """DRAFT -> PENDING.  A bill already submitted is a no-op."""
        bill = self._load_for_update(bill_id)
        if bill.submitted_at is not None and bill.cancelled_at is None:
            return OperationResult(bill.id, bill.status.value, no_op=True,
                                   message="bill already submitted")
        self._refresh(bill)
        self._require(bill, "submit")
        bill.submitted_at = self._clock.now()
        self._touch(bill, actor_id)

        logger.info(
            "bill_submitted",
            extra={"bill_id": str(bill.id), "bill_number": bill.bill_number,
                   "status": bill.status.value, "actor_id": str(actor_id)},
        )
        self._emit("bill.submitted", "Bill", bill.id, bill_number=bill.bill_number)
        return OperationResult(bill.id, bill.status.value)

    def _compute_totals(self, doc: BillModel) -> DocumentTotals:
        return compute_bill_totals(
            lines=[LineAmounts(line.quantity, line.unit_price, line.tax_rate) for line in doc.lines],
            currency=doc.currency,
        )

    def _derive_status(self, doc: BillModel, today: date) -> BillStatus:
        return derive_bill_status(self._status_inputs(doc, today, submitted=doc.submitted_at is not None))

    def _payment_legs(self, doc: BillModel, settlement_account_id: UUID | None) -> dict | None:
        if doc.payable_account_id is None or settlement_account_id is None:
            return None
        return {
            "debit_account_id": doc.payable_account_id,
            "credit_account_id": settlement_account_id,
        }

    def _line_values(self, line: LineItemInput) -> dict:
        if line.discount_percent:
            raise InvalidLineItemError("discount_percent", line.discount_percent,
                                       "bills do not carry discounts")
        return {
            "description": line.description,
            "quantity": line.quantity,
            "unit_price": line.unit_price,
            "tax_rate": line.tax_rate,
        }
