"""
ProjectHub
Finance blueprint: reimbursement requests, receipts, vendors, expense types, payouts.

Endpoints summary:
    REQUESTS  /api/v1/reimbursement-requests                          GET (finance), POST
              /api/v1/reimbursement-requests/mine                     GET
              /api/v1/reimbursement-requests/<id>                     GET, DELETE
              /api/v1/reimbursement-requests/<id>/edit                POST
              /api/v1/reimbursement-requests/<id>/set-sabo-number     POST  {"sabo_number"}
              /api/v1/reimbursement-requests/<id>/approve             POST
              /api/v1/reimbursement-requests/<id>/delivered           POST
              /api/v1/reimbursement-requests/pending-advisor          GET
              /api/v1/reimbursement-requests/pending-advisor/send     POST  {"sabo_numbers": [...]}

    RECEIPTS  /api/v1/reimbursement-requests/<id>/receipts            POST  multipart "image"
              /api/v1/receipts/<storage_file_id>                      GET   (file download)

    VENDORS   /api/v1/vendors                                         GET, POST
    EXPENSES  /api/v1/expense-types                                   GET, POST
              /api/v1/expense-types/<id>/edit                         POST

    PAYOUTS   /api/v1/reimbursements                                  GET (finance), POST {"amount"}
              /api/v1/reimbursements/mine                             GET
"""

import io

from flask import Blueprint, jsonify, request, send_file

from projecthub.blueprints import json_body, paginate
from projecthub.core.exceptions import ValidationError
from projecthub.middleware.current_user import get_current_user
from projecthub.services import reimbursement_service as svc

reimbursement_bp = Blueprint("reimbursement", __name__, url_prefix="/api/v1")

_REQUEST_FIELDS = ("date_of_expense", "vendor_id", "account", "expense_type_id", "products", "total_cost")


def _request_fields(data):
    missing = [f for f in _REQUEST_FIELDS if data.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", details={"missing": missing})
    return [data[f] for f in _REQUEST_FIELDS]


# ═══════════════════════════════════════════════════════════════════════════
#  REQUESTS
# ═══════════════════════════════════════════════════════════════════════════

@reimbursement_bp.route("/reimbursement-requests", methods=["GET"])
def list_requests():
    items, total = paginate(svc.get_all_reimbursement_requests(get_current_user()))
    return jsonify({"items": items, "total": total})


@reimbursement_bp.route("/reimbursement-requests/mine", methods=["GET"])
def list_my_requests():
    return jsonify({"items": svc.get_user_reimbursement_requests(get_current_user())})


@reimbursement_bp.route("/reimbursement-requests", methods=["POST"])
def create_request():
    result = svc.create_reimbursement_request(get_current_user(), *_request_fields(json_body()))
    return jsonify(result), 201


@reimbursement_bp.route("/reimbursement-requests/pending-advisor", methods=["GET"])
def pending_advisor_list():
    return jsonify({"items": svc.get_pending_advisor_list(get_current_user())})


@reimbursement_bp.route("/reimbursement-requests/pending-advisor/send", methods=["POST"])
def send_pending_advisor_list():
    sent = svc.send_pending_advisor_list(get_current_user(), json_body().get("sabo_numbers"))
    return jsonify({"items": sent})


@reimbursement_bp.route("/reimbursement-requests/<request_id>", methods=["GET"])
def get_request(request_id):
    return jsonify(svc.get_single_reimbursement_request(get_current_user(), request_id))


@reimbursement_bp.route("/reimbursement-requests/<request_id>/edit", methods=["POST"])
def edit_request(request_id):
    data = json_body()
    result = svc.edit_reimbursement_request(
        get_current_user(), request_id, *_request_fields(data),
        receipt_pictures=data.get("receipt_pictures"),
    )
    return jsonify(result)


@reimbursement_bp.route("/reimbursement-requests/<request_id>", methods=["DELETE"])
def delete_request(request_id):
    return jsonify(svc.delete_reimbursement_request(get_current_user(), request_id))


@reimbursement_bp.route("/reimbursement-requests/<request_id>/set-sabo-number", methods=["POST"])
def set_sabo_number(request_id):
    return jsonify(svc.set_sabo_number(get_current_user(), request_id, json_body().get("sabo_number")))


@reimbursement_bp.route("/reimbursement-requests/<request_id>/approve", methods=["POST"])
def approve_request(request_id):
    return jsonify(svc.approve_reimbursement_request(get_current_user(), request_id))


@reimbursement_bp.route("/reimbursement-requests/<request_id>/delivered", methods=["POST"])
def mark_delivered(request_id):
    return jsonify(svc.mark_reimbursement_request_delivered(get_current_user(), request_id))


# ═══════════════════════════════════════════════════════════════════════════
#  RECEIPTS
# ═══════════════════════════════════════════════════════════════════════════

@reimbursement_bp.route("/reimbursement-requests/<request_id>/receipts", methods=["POST"])
def upload_receipt(request_id):
    file = request.files.get("image")
    if file is None:
        raise ValidationError("a receipt file is required in the 'image' field")
    receipt = svc.upload_receipt(get_current_user(), request_id, file.filename, file.read(), file.mimetype)
    return jsonify(receipt), 201


@reimbursement_bp.route("/receipts/<storage_file_id>", methods=["GET"])
def download_receipt(storage_file_id):
    content, mimetype, filename = svc.download_receipt(get_current_user(), storage_file_id)
    return send_file(io.BytesIO(content), mimetype=mimetype, download_name=filename)


# ═══════════════════════════════════════════════════════════════════════════
#  VENDORS / EXPENSE TYPES
# ═══════════════════════════════════════════════════════════════════════════

@reimbursement_bp.route("/vendors", methods=["GET"])
def list_vendors():
    return jsonify({"items": svc.get_all_vendors()})


@reimbursement_bp.route("/vendors", methods=["POST"])
def create_vendor():
    return jsonify(svc.create_vendor(get_current_user(), json_body().get("name"))), 201


@reimbursement_bp.route("/expense-types", methods=["GET"])
def list_expense_types():
    return jsonify({"items": svc.get_all_expense_types()})


@reimbursement_bp.route("/expense-types", methods=["POST"])
def create_expense_type():
    data = json_body()
    result = svc.create_expense_type(get_current_user(), data.get("name"), data.get("code"),
                                     data.get("allowed", True))
    return jsonify(result), 201


@reimbursement_bp.route("/expense-types/<expense_type_id>/edit", methods=["POST"])
def edit_expense_type(expense_type_id):
    data = json_body()
    return jsonify(svc.edit_expense_type(get_current_user(), expense_type_id, data.get("name"),
                                         data.get("code"), data.get("allowed")))


# ═══════════════════════════════════════════════════════════════════════════
#  PAYOUTS
# ═══════════════════════════════════════════════════════════════════════════

@reimbursement_bp.route("/reimbursements", methods=["GET"])
def list_reimbursements():
    items, total = paginate(svc.get_all_reimbursements(get_current_user()))
    return jsonify({"items": items, "total": total})


@reimbursement_bp.route("/reimbursements/mine", methods=["GET"])
def list_my_reimbursements():
    return jsonify({"items": svc.get_user_reimbursements(get_current_user())})


@reimbursement_bp.route("/reimbursements", methods=["POST"])
def reimburse_user():
    return jsonify(svc.reimburse_user(get_current_user(), json_body().get("amount"))), 201
