# backend/expenseflow/routes/expenses.py
"""
Expense request API routes.

Thin triggers over the lifecycle engine: parse JSON, call one engine
operation with g.actor, translate the TransitionResult into a response.

Response shape: {"success": bool, "message"?: str, "error"?: str, "request"?: {...}}
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..decorators import require_actor
from ..errors import ErrorKind, INTERNAL_ERROR_MESSAGE
from .. import get_engine


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


STATUS_CODES = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.SCOPE: 403,
    ErrorKind.STALE_STATE: 409,
    ErrorKind.INTERNAL: 500,
}


def _respond(result, success_code: int = 200):
    if result.success:
        return jsonify(result.to_dict()), success_code
    return jsonify(result.to_dict()), STATUS_CODES.get(result.error, 400)


def _internal_error(operation: str):
    db.session.rollback()
    actor_id = g.actor.id if "actor" in g else None
    current_app.logger.exception("Unhandled error in %s actor_id=%s", operation, actor_id)
    return jsonify({"success": False, "error": ErrorKind.INTERNAL.value, "message": INTERNAL_ERROR_MESSAGE}), 500


def _body() -> dict:
    return request.get_json(silent=True) or {}


@expenses_bp.route("", methods=["POST"])
@require_actor
def create_expense():
    """
    Create a new expense request (status: pending).

    Request body:
    {
        "description": str,
        "amount": str | number,
        "currency": str (optional)
    }

    Returns:
        201: Request created
        400: Invalid input
        403: Actor has no company
    """
    data = _body()
    try:
        result = get_engine().create(
            g.actor,
            description=data.get("description"),
            amount=data.get("amount"),
            currency=data.get("currency"),
        )
        return _respond(result, 201)
    except Exception:
        return _internal_error("create_expense")


@expenses_bp.route("/<int:request_id>/approve", methods=["POST"])
@require_actor
def approve_expense(request_id: int):
    """
    Approve a pending request (director action).

    Request body: {"comment": str (optional)}

    Returns:
        200: Approved
        403: Forbidden / other company
        409: Already processed or not found
    """
    data = _body()
    try:
        return _respond(get_engine().approve(g.actor, request_id, comment=data.get("comment")))
    except Exception:
        return _internal_error("approve_expense")


@expenses_bp.route("/<int:request_id>/decline", methods=["POST"])
@require_actor
def decline_expense(request_id: int):
    data = _body()
    try:
        return _respond(get_engine().decline(g.actor, request_id, reason=data.get("reason")))
    except Exception:
        return _internal_error("decline_expense")


@expenses_bp.route("/<int:request_id>/issue", methods=["POST"])
@require_actor
def issue_expense(request_id: int):
    """
    Mark an approved request as issued (cashier action).

    Request body: {"amount": str | number (optional, defaults to the approved amount)}
    """
    data = _body()
    try:
        return _respond(get_engine().issue(g.actor, request_id, amount=data.get("amount")))
    except Exception:
        return _internal_error("issue_expense")


@expenses_bp.route("/direct-issue", methods=["POST"])
@require_actor
def direct_issue_expense():
    """
    Issue money without director approval (cashier action).

    Request body:
    {
        "recipient_id": int,
        "description": str,
        "amount": str | number,
        "comment": str (optional),
        "currency": str (optional)
    }
    """
    data = _body()
    recipient_id = data.get("recipient_id")
    # bool is an int subclass; JSON true must not resolve to user #1
    if isinstance(recipient_id, bool) or not isinstance(recipient_id, int):
        return jsonify({"success": False, "error": ErrorKind.VALIDATION.value,
                        "message": "Missing required field: recipient_id"}), 400

    try:
        result = get_engine().direct_issue(
            g.actor,
            recipient_id=recipient_id,
            description=data.get("description"),
            amount=data.get("amount"),
            comment=data.get("comment"),
            currency=data.get("currency"),
        )
        return _respond(result, 201)
    except Exception:
        return _internal_error("direct_issue_expense")


@expenses_bp.route("/<int:request_id>", methods=["DELETE"])
@require_actor
def delete_expense(request_id: int):
    data = _body()
    try:
        return _respond(get_engine().delete(g.actor, request_id, reason=data.get("reason")))
    except Exception:
        return _internal_error("delete_expense")


@expenses_bp.route("/<int:request_id>", methods=["GET"])
@require_actor
def get_expense(request_id: int):
    """Request with its approval events, visible to its requester or the company staff."""
    engine = get_engine()
    try:
        expense = engine.get_request(request_id)
        if expense is None:
            return jsonify({"success": False, "message": f"Заявка #{request_id} не найдена."}), 404
        if not engine.can_view(g.actor, expense):
            return jsonify({"success": False, "error": ErrorKind.SCOPE.value,
                            "message": "Нет доступа к заявке."}), 403
        return jsonify({"success": True, "request": expense.to_dict(include_approvals=True)}), 200
    except Exception:
        return _internal_error("get_expense")


@expenses_bp.route("/history", methods=["GET"])
@require_actor
def expense_history():
    """
    Role-aware history, newest first.

    Query params: limit (optional, int)
    """
    limit = request.args.get("limit", type=int)
    if limit is not None and limit <= 0:
        limit = None
    try:
        requests_ = get_engine().history_for_user(g.actor, limit=limit)
        return jsonify({
            "success": True,
            "requests": [r.to_dict() for r in requests_],
        }), 200
    except Exception:
        return _internal_error("expense_history")
