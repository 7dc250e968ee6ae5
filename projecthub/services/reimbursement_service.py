"""Finance service layer: reimbursement requests, receipts, vendors, expense types, payouts.

Request lifecycle (see ``projecthub.models.reimbursement``):

    pending → sabo_assigned → advisor_review → approved → delivered
    any non-terminal state → deleted

Only the requester edits, and only while pending. Finance (admins and the
finance team) drives every other transition. Every transition appends a
ReimbursementStatus history row.

Money is integer cents throughout.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select

from projecthub.core.exceptions import AccessDeniedError, ConflictError, DeletedEntityError, NotFoundError, ValidationError
from projecthub.core.wbs import WbsNumber
from projecthub.integrations.document_store import document_store
from projecthub.integrations.notifier import notifier
from projecthub.models.reimbursement import (
    ACCOUNTS,
    REQUEST_TERMINAL_STATUSES,
    ExpenseType,
    ReceiptFile,
    Reimbursement,
    ReimbursementProduct,
    ReimbursementRequest,
    ReimbursementStatus,
    Vendor,
    apply_request_transition,
)
from projecthub.repository import get_repository
from projecthub.services.notification import NotificationService
from projecthub.services.permission import can_perform, require
from projecthub.services.wbs_common import get_live_wbs_element, next_number
from projecthub.utils.helpers import parse_date

logger = logging.getLogger(__name__)

_FINANCE_DENIED = "You must be an admin or on the finance team to do this"


def _log(actor, entity_type, entity_id, message, *args, **extra):
    logger.info(message, *args, extra={"user_id": actor.id, "entity_type": entity_type,
                                       "entity_id": entity_id, **extra})


def _require_finance(actor, repo):
    require(actor, "finance.manage", None, _FINANCE_DENIED, repo=repo)


def _get_request(repo, request_id):
    request = repo.get(ReimbursementRequest, request_id)
    if request is None:
        raise NotFoundError("Reimbursement Request", request_id)
    if request.is_deleted:
        raise DeletedEntityError("Reimbursement Request", request_id)
    return request


def _non_negative_int(value, field):
    """Accept ints and integer strings; reject bools, fractions and negatives."""
    message = f"{field} must be a non-negative integer"
    if isinstance(value, bool) or isinstance(value, float) and not value.is_integer():
        raise ValidationError(message)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(message) from None
    if number < 0:
        raise ValidationError(message)
    return number


# ── Input validation ─────────────────────────────────────────────────────


def _validate_request_fields(repo, date_of_expense, vendor_id, account, expense_type_id, products, total_cost):
    """Validate the request payload and resolve its references.

    Returns:
        (expense_date, vendor, expense_type, products, total_cost) where
        products is a list of dicts with a resolved ``wbs_element``.
    """
    expense_date = parse_date(date_of_expense)
    if expense_date is None:
        raise ValidationError(f"Invalid date_of_expense: {date_of_expense}")
    if account not in ACCOUNTS:
        raise ValidationError(f"account must be one of: {sorted(ACCOUNTS)}")

    vendor = repo.get(Vendor, vendor_id)
    if vendor is None:
        raise NotFoundError("Vendor", vendor_id)
    expense_type = repo.get(ExpenseType, expense_type_id)
    if expense_type is None:
        raise NotFoundError("Expense Type", expense_type_id)
    if not expense_type.allowed:
        raise ValidationError(f"The expense type {expense_type.name} is not allowed")

    if not isinstance(products, list) or not products:
        raise ValidationError("at least one reimbursement product is required")
    resolved = []
    for product in products:
        if not isinstance(product, dict):
            raise ValidationError("each reimbursement product must be an object")
        name = str(product.get("name") or "").strip()
        if not name:
            raise ValidationError("every reimbursement product needs a name")
        cost = _non_negative_int(product.get("cost"), "cost")
        wbs = product.get("wbs_num")
        wbs = WbsNumber.parse(wbs) if isinstance(wbs, str) else WbsNumber.from_dict(wbs or {})
        resolved.append({
            "id": product.get("id"),
            "name": name,
            "cost": cost,
            "wbs_element": get_live_wbs_element(repo, wbs),
        })

    total_cost = _non_negative_int(total_cost, "total_cost")
    products_sum = sum(p["cost"] for p in resolved)
    if products_sum != total_cost:
        raise ValidationError(
            f"Total cost {total_cost} does not match the sum of product costs {products_sum}",
            details={"total_cost": total_cost, "products_sum": products_sum},
        )
    return expense_date, vendor, expense_type, resolved, total_cost


# ── Requests ─────────────────────────────────────────────────────────────


def create_reimbursement_request(actor, date_of_expense, vendor_id, account, expense_type_id,
                                 products, total_cost, *, repo=None):
    repo = repo or get_repository()
    expense_date, vendor, expense_type, resolved, total = _validate_request_fields(
        repo, date_of_expense, vendor_id, account, expense_type_id, products, total_cost,
    )

    now = datetime.now(timezone.utc)
    request = ReimbursementRequest(
        identifier=next_number(repo, ReimbursementRequest.identifier),
        recipient_id=actor.id,
        recipient=actor,
        vendor=vendor,
        expense_type=expense_type,
        account=account,
        date_of_expense=expense_date,
        total_cost=total,
        status="pending",
        date_created=now,
    )
    for p in resolved:
        request.products.append(ReimbursementProduct(name=p["name"], cost=p["cost"], wbs_element=p["wbs_element"]))
    request.status_history.append(ReimbursementStatus(type="pending", user_id=actor.id, date_created=now))
    repo.add(request)
    repo.commit()
    _log(actor, "reimbursement_request", request.id, "Reimbursement request #%s created for %s cents",
         request.identifier, total)
    return request.to_dict()


def edit_reimbursement_request(actor, request_id, date_of_expense, vendor_id, account, expense_type_id,
                               products, total_cost, receipt_pictures=None, *, repo=None):
    """Replace a pending request's fields, products and (optionally) receipts.

    Products carrying an ``id`` are updated in place; live products not
    listed are soft-deleted; products without an id are added. Receipts not
    listed in ``receipt_pictures`` are soft-deleted.
    """
    repo = repo or get_repository()
    request = _get_request(repo, request_id)
    require(actor, "reimbursement_request.edit", request,
            "Only the creator of a reimbursement request can edit it", repo=repo)
    if request.status != "pending":
        raise ValidationError("Cannot edit a reimbursement request once it has been processed")

    expense_date, vendor, expense_type, resolved, total = _validate_request_fields(
        repo, date_of_expense, vendor_id, account, expense_type_id, products, total_cost,
    )
    live_products = {p.id: p for p in request.active_products}
    for p in resolved:
        if p["id"] is not None and p["id"] not in live_products:
            raise NotFoundError("Reimbursement Product", p["id"])
    keep_receipts = None
    if receipt_pictures is not None:
        keep_receipts = {r.get("storage_file_id") for r in receipt_pictures if isinstance(r, dict)}

    now = datetime.now(timezone.utc)
    request.date_of_expense = expense_date
    request.vendor = vendor
    request.expense_type = expense_type
    request.account = account
    request.total_cost = total

    kept = set()
    for p in resolved:
        if p["id"] is not None:
            product = live_products[p["id"]]
            product.name, product.cost, product.wbs_element = p["name"], p["cost"], p["wbs_element"]
            kept.add(product.id)
        else:
            request.products.append(
                ReimbursementProduct(name=p["name"], cost=p["cost"], wbs_element=p["wbs_element"])
            )
    for product_id, product in live_products.items():
        if product_id not in kept:
            product.mark_deleted(actor, now)
    if keep_receipts is not None:
        for receipt in request.receipts:
            if not receipt.is_deleted and receipt.storage_file_id not in keep_receipts:
                receipt.mark_deleted(actor, now)

    repo.commit()
    _log(actor, "reimbursement_request", request.id, "Reimbursement request #%s edited", request.identifier)
    return request.to_dict()


def delete_reimbursement_request(actor, request_id, *, repo=None):
    """Soft-delete a request: the requester while it is pending, or finance at any non-terminal state."""
    repo = repo or get_repository()
    request = _get_request(repo, request_id)
    if not can_perform(actor, "finance.manage", repo=repo):
        if request.recipient_id != actor.id:
            raise AccessDeniedError("You do not have permission to delete this reimbursement request")
        if request.status != "pending":
            raise ValidationError("Cannot delete a reimbursement request once it has been processed")

    apply_request_transition(request, "delete", actor)
    repo.commit()
    _log(actor, "reimbursement_request", request.id, "Reimbursement request #%s deleted", request.identifier,
         transition="delete")
    return request.to_dict()


def get_single_reimbursement_request(actor, request_id, *, repo=None):
    repo = repo or get_repository()
    request = _get_request(repo, request_id)
    require(actor, "reimbursement_request.view", request,
            "You do not have access to this reimbursement request", repo=repo)
    return request.to_dict()


def get_user_reimbursement_requests(actor, *, repo=None):
    repo = repo or get_repository()
    requests_ = repo.find_many(
        ReimbursementRequest,
        ReimbursementRequest.recipient_id == actor.id,
        ReimbursementRequest.date_deleted.is_(None),
        order_by=ReimbursementRequest.identifier.desc(),
    )
    return [r.to_dict() for r in requests_]


def get_all_reimbursement_requests(actor, *, repo=None):
    repo = repo or get_repository()
    _require_finance(actor, repo)
    requests_ = repo.find_many(
        ReimbursementRequest,
        ReimbursementRequest.date_deleted.is_(None),
        order_by=ReimbursementRequest.identifier.desc(),
    )
    return [r.to_dict() for r in requests_]


# ── Finance transitions ──────────────────────────────────────────────────


def set_sabo_number(actor, request_id, sabo_number, *, repo=None):
    """Assign the SABO purchase number; correcting it while still ``sabo_assigned`` is allowed."""
    repo = repo or get_repository()
    request = _get_request(repo, request_id)
    _require_finance(actor, repo)
    sabo_number = _non_negative_int(sabo_number, "sabo_number")

    if request.status not in ("pending", "sabo_assigned"):
        raise ValidationError(f"Cannot set the SABO number of a request that is {request.status.replace('_', ' ')}")
    clash = repo.find_first(ReimbursementRequest, ReimbursementRequest.sabo_id == sabo_number,
                            ReimbursementRequest.id != request.id)
    if clash is not None:
        raise ConflictError("Reimbursement Request", "sabo_id", str(sabo_number))

    request.sabo_id = sabo_number
    if request.status == "pending":
        apply_request_transition(request, "assign_sabo", actor)
    repo.commit()
    _log(actor, "reimbursement_request", request.id, "SABO #%s set on request #%s", sabo_number,
         request.identifier, transition="assign_sabo")
    return request.to_dict()


def get_pending_advisor_list(actor, *, repo=None):
    """Requests that have a SABO number and still need to go to the advisor."""
    repo = repo or get_repository()
    _require_finance(actor, repo)
    pending = repo.find_many(
        ReimbursementRequest,
        ReimbursementRequest.status == "sabo_assigned",
        ReimbursementRequest.date_deleted.is_(None),
        order_by=ReimbursementRequest.sabo_id,
    )
    return [r.to_dict() for r in pending]


def send_pending_advisor_list(actor, sabo_numbers, *, repo=None):
    """Mail the advisor the given SABO numbers and move those requests to advisor review.

    The mail is sent before anything is written; if it fails the requests
    stay ``sabo_assigned`` and DownstreamError propagates.
    """
    repo = repo or get_repository()
    _require_finance(actor, repo)
    if not isinstance(sabo_numbers, list) or not sabo_numbers:
        raise ValidationError("sabo_numbers must be a non-empty list")
    numbers = [_non_negative_int(n, "sabo_numbers") for n in sabo_numbers]

    requests_ = []
    for number in dict.fromkeys(numbers):
        request = repo.find_first(ReimbursementRequest, ReimbursementRequest.sabo_id == number)
        if request is None:
            raise NotFoundError("Reimbursement Request", f"SABO #{number}")
        if request.is_deleted:
            raise DeletedEntityError("Reimbursement Request", f"SABO #{number}")
        if request.status != "sabo_assigned":
            raise ValidationError(f"SABO #{number} is not waiting to be sent to the advisor")
        requests_.append(request)

    lines = ", ".join(str(r.sabo_id) for r in requests_)
    notifier.send_mail_to_advisor(
        "Reimbursement Requests To Be Approved By Advisor",
        f"The following reimbursements need to be approved: {lines}.",
    )

    now = datetime.now(timezone.utc)
    for request in requests_:
        apply_request_transition(request, "send_to_advisor", actor, now)
    repo.commit()
    _log(actor, "reimbursement_request", None, "Sent %d requests to the advisor: %s", len(requests_), lines,
         transition="send_to_advisor")
    return [r.to_dict() for r in requests_]


def approve_reimbursement_request(actor, request_id, *, repo=None):
    repo = repo or get_repository()
    request = _get_request(repo, request_id)
    _require_finance(actor, repo)
    apply_request_transition(request, "approve", actor)
    repo.commit()
    _log(actor, "reimbursement_request", request.id, "Reimbursement request #%s approved", request.identifier,
         transition="approve")
    return request.to_dict()


def mark_reimbursement_request_delivered(actor, request_id, *, repo=None):
    repo = repo or get_repository()
    request = _get_request(repo, request_id)
    _require_finance(actor, repo)
    apply_request_transition(request, "mark_delivered", actor)
    repo.commit()
    _log(actor, "reimbursement_request", request.id, "Reimbursement request #%s delivered", request.identifier,
         transition="mark_delivered")
    NotificationService.notify_reimbursement_delivered(request)
    return request.to_dict()


# ── Receipts ─────────────────────────────────────────────────────────────


def upload_receipt(actor, request_id, filename, content, mimetype, *, repo=None):
    """Store a receipt in the document store and attach it to the request.

    The file is stored before the commit. If the commit fails the stored id
    is logged at ERROR so the orphaned file can be removed from the store.
    """
    repo = repo or get_repository()
    request = _get_request(repo, request_id)
    require(actor, "reimbursement_request.view", request,
            "Only the creator or finance can upload receipts to this request", repo=repo)
    if request.status in REQUEST_TERMINAL_STATUSES:
        raise ValidationError(f"Cannot upload receipts to a request that is {request.status}")
    if not filename or not content:
        raise ValidationError("a non-empty receipt file is required")

    identifier = request.identifier
    stored = document_store.upload(filename, content, mimetype or "application/octet-stream")
    receipt = ReceiptFile(name=stored["name"], storage_file_id=stored["id"])
    request.receipts.append(receipt)
    try:
        repo.commit()
    except Exception:
        logger.error("Receipt %s stored but not attached to request #%s; remove it from the document store",
                     stored["id"], identifier, extra={"user_id": actor.id, "entity_type": "reimbursement_request"})
        raise
    _log(actor, "reimbursement_request", request.id, "Receipt %s uploaded to request #%s",
         stored["id"], request.identifier)
    return receipt.to_dict()


def download_receipt(actor, storage_file_id, *, repo=None):
    """Return ``(content, mimetype, filename)`` for a receipt the actor may view."""
    repo = repo or get_repository()
    receipt = repo.find_first(ReceiptFile, ReceiptFile.storage_file_id == storage_file_id)
    if receipt is None:
        raise NotFoundError("Receipt", storage_file_id)
    if receipt.is_deleted:
        raise DeletedEntityError("Receipt", storage_file_id)
    require(actor, "reimbursement_request.view", receipt.request,
            "You do not have access to this receipt", repo=repo)
    content, mimetype = document_store.download(storage_file_id)
    return content, mimetype, receipt.name


# ── Vendors / expense types ──────────────────────────────────────────────


def create_vendor(actor, name, *, repo=None):
    repo = repo or get_repository()
    _require_finance(actor, repo)
    name = str(name or "").strip()
    if not name:
        raise ValidationError("name is required")
    if repo.find_first(Vendor, Vendor.name == name) is not None:
        raise ConflictError("Vendor", "name", name)

    vendor = repo.add(Vendor(name=name))
    repo.commit()
    _log(actor, "vendor", vendor.id, "Vendor %s created", name)
    return vendor.to_dict()


def get_all_vendors(*, repo=None):
    repo = repo or get_repository()
    return [v.to_dict() for v in repo.find_many(Vendor, order_by=Vendor.name)]


def _validate_expense_type(name, code, allowed):
    name = str(name or "").strip()
    if not name:
        raise ValidationError("name is required")
    code = _non_negative_int(code, "code")
    if not isinstance(allowed, bool):
        raise ValidationError("allowed must be a boolean")
    return name, code, allowed


def create_expense_type(actor, name, code, allowed=True, *, repo=None):
    repo = repo or get_repository()
    _require_finance(actor, repo)
    name, code, allowed = _validate_expense_type(name, code, allowed)
    if repo.find_first(ExpenseType, ExpenseType.code == code) is not None:
        raise ConflictError("Expense Type", "code", str(code))

    expense_type = repo.add(ExpenseType(name=name, code=code, allowed=allowed))
    repo.commit()
    _log(actor, "expense_type", expense_type.id, "Expense type %s (%s) created", name, code)
    return expense_type.to_dict()


def edit_expense_type(actor, expense_type_id, name, code, allowed, *, repo=None):
    repo = repo or get_repository()
    _require_finance(actor, repo)
    expense_type = repo.get(ExpenseType, expense_type_id)
    if expense_type is None:
        raise NotFoundError("Expense Type", expense_type_id)
    name, code, allowed = _validate_expense_type(name, code, allowed)
    clash = repo.find_first(ExpenseType, ExpenseType.code == code, ExpenseType.id != expense_type.id)
    if clash is not None:
        raise ConflictError("Expense Type", "code", str(code))

    expense_type.name, expense_type.code, expense_type.allowed = name, code, allowed
    repo.commit()
    _log(actor, "expense_type", expense_type.id, "Expense type %s edited", expense_type.id)
    return expense_type.to_dict()


def get_all_expense_types(*, repo=None):
    repo = repo or get_repository()
    return [e.to_dict() for e in repo.find_many(ExpenseType, order_by=ExpenseType.code)]


# ── Payouts ──────────────────────────────────────────────────────────────


def amount_owed(repo, user_id):
    """Total cost of the user's live requests minus what has already been paid back."""
    requested = repo.scalar(
        select(func.coalesce(func.sum(ReimbursementRequest.total_cost), 0)).where(
            ReimbursementRequest.recipient_id == user_id,
            ReimbursementRequest.date_deleted.is_(None),
        )
    )
    paid = repo.scalar(
        select(func.coalesce(func.sum(Reimbursement.amount), 0)).where(
            Reimbursement.user_submitter_id == user_id,
        )
    )
    return int(requested or 0) - int(paid or 0)


def reimburse_user(actor, amount, *, repo=None):
    """Record that ``actor`` has been paid ``amount`` cents; cannot exceed what they are owed."""
    repo = repo or get_repository()
    amount = _non_negative_int(amount, "amount")
    if amount == 0:
        raise ValidationError("amount must be greater than zero")
    owed = amount_owed(repo, actor.id)
    if amount > owed:
        raise ValidationError(
            f"Reimbursement of {amount} is greater than the {owed} owed",
            details={"amount": amount, "owed": owed},
        )

    reimbursement = repo.add(Reimbursement(user_submitter_id=actor.id, user_submitter=actor, amount=amount))
    repo.commit()
    _log(actor, "reimbursement", reimbursement.id, "Recorded reimbursement of %s cents (%s owed before)",
         amount, owed)
    return reimbursement.to_dict()


def get_user_reimbursements(actor, *, repo=None):
    repo = repo or get_repository()
    payouts = repo.find_many(Reimbursement, Reimbursement.user_submitter_id == actor.id,
                             order_by=Reimbursement.date_created.desc())
    return [r.to_dict() for r in payouts]


def get_all_reimbursements(actor, *, repo=None):
    repo = repo or get_repository()
    _require_finance(actor, repo)
    return [r.to_dict() for r in repo.find_many(Reimbursement, order_by=Reimbursement.date_created.desc())]
