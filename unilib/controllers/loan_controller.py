from flask import Blueprint, jsonify, g
from unilib.services.loan_service import LoanService
from unilib.utils.decorators import tenant_required
from unilib.utils.http import error_response, json_body
from unilib.utils.serializers import loan_json

loan_bp = Blueprint("loans", __name__)


@loan_bp.post("/checkout")
@tenant_required
def checkout():
    try:
        data = json_body()
        loan = LoanService.checkout(
            g.tenant,
            data.get("bookItemId"),
            data.get("durationDays"),
        )
        return jsonify(loan_json(loan)), 201
    except ValueError as e:
        return error_response(e)


@loan_bp.post("/return/<loan_id>")
@tenant_required
def return_loan(loan_id):
    try:
        loan, fine = LoanService.return_loan(g.tenant, loan_id)
        body = loan_json(loan)
        body["fineCharged"] = float(fine)
        return jsonify(body)
    except ValueError as e:
        return error_response(e)


@loan_bp.get("/mine")
@tenant_required
def my_loans():
    loans = LoanService.list_my_loans(g.tenant)
    return jsonify([loan_json(x, x.book) for x in loans])
