# routes/quotes.py
from flask import request, jsonify, send_file
from marshmallow import ValidationError

from .. import logger
from . import quotes_bp
from ..schemas.quote_schemas import QuoteCreateSchema, QuoteUpdateSchema, QuoteLookupSchema
from ..services.gcode_service import get_gcodes_for_quote
from ..services.quote_service import QuoteService, QuoteNotFoundError
from ..services.report_service import QuoteReportService
from ..utils.helpers import first_error_message, permission_required, request_user, staff_required


def _not_found(quote_id):
    return jsonify({"error": f"We couldn't find quote {quote_id}."}), 404


@quotes_bp.route("", methods=["POST"])
def create_quote():
    """
    Submit a quote request. Open to guests and logged-in customers.

    JSON Payload (example):
    {
      "items": [
        {"model": 12, "material": 1, "colour": 3, "process": 2, "quantity": 2}
      ],
      "customerEmail": "jane@example.com",   // guests only
      "notes": "Needed by Friday"
    }

    Response:
      201 Created
      {
        "message": "Quote created successfully!",
        "doc": { ...quote... }
      }
      400 {"error": "<message for the customer>"}
    """
    data = request.get_json(silent=True) or {}
    logger.debug(f"Received quote request: {data}")

    schema = QuoteCreateSchema()
    try:
        validated_data = schema.load(data)
    except ValidationError as err:
        logger.warning(f"Quote request rejected: {err.messages}")
        return jsonify({"error": first_error_message(err.messages), "errors": err.messages}), 400

    try:
        quote = QuoteService.create_quote(validated_data, request_user())
    except ValueError as ve:
        return jsonify({"error": str(ve)}), 400
    except Exception as e:
        logger.error(f"Unexpected error creating quote: {str(e)}")
        return jsonify({"error": "We could not create the quote."}), 500

    return jsonify({
        "message": "Quote created successfully!",
        "doc": quote.serialize()
    }), 201


@quotes_bp.route("", methods=["GET"])
@permission_required('view_own_quotes')
def list_my_quotes():
    """The requester's own quotes, newest first"""
    quotes = QuoteService.list_quotes_for_customer(request_user())
    return jsonify({
        "docs": [quote.serialize() for quote in quotes],
        "total_docs": len(quotes)
    }), 200


@quotes_bp.route("/<int:quote_id>", methods=["GET"])
def get_quote(quote_id):
    """
    Quote status lookup. Guests identify themselves with ?email=, matched
    case-insensitively against the quote's contact email.
    """
    args = QuoteLookupSchema().load(request.args.to_dict())
    try:
        quote = QuoteService.find_quote_for_lookup(quote_id, request_user(), args.get('email'))
    except QuoteNotFoundError:
        return _not_found(quote_id)

    return jsonify({"doc": quote.serialize()}), 200


@quotes_bp.route("/<int:quote_id>", methods=["PATCH"])
@staff_required
def update_quote(quote_id):
    """
    Staff review: change status, notes, currency and per-item grams,
    priceOverride or quantity. Pricing and filaments are recomputed.

    JSON Payload (example):
    {
      "status": "quoted",
      "items": [{"id": 4, "grams": 35.5, "priceOverride": null}]
    }
    """
    data = request.get_json(silent=True) or {}

    schema = QuoteUpdateSchema()
    try:
        validated_data = schema.load(data)
    except ValidationError as err:
        return jsonify({"error": first_error_message(err.messages), "errors": err.messages}), 400

    try:
        quote = QuoteService.update_quote(quote_id, validated_data, request_user())
    except QuoteNotFoundError:
        return _not_found(quote_id)
    except ValueError as ve:
        return jsonify({"error": str(ve)}), 400
    except Exception as e:
        logger.error(f"Unexpected error updating quote {quote_id}: {str(e)}")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Quote updated", "doc": quote.serialize()}), 200


@quotes_bp.route("/<int:quote_id>", methods=["DELETE"])
@staff_required
def delete_quote(quote_id):
    try:
        QuoteService.delete_quote(quote_id)
    except QuoteNotFoundError:
        return _not_found(quote_id)

    return jsonify({"message": "Quote deleted"}), 200


@quotes_bp.route("/<int:quote_id>/gcodes", methods=["GET"])
@permission_required('view_gcodes')
def list_quote_gcodes(quote_id):
    gcodes = get_gcodes_for_quote(quote_id)
    return jsonify([gcode.serialize() for gcode in gcodes]), 200


@quotes_bp.route("/<int:quote_id>/pdf", methods=["GET"])
@staff_required
def quote_pdf(quote_id):
    try:
        quote = QuoteService.find_quote_for_lookup(quote_id, request_user())
    except QuoteNotFoundError:
        return _not_found(quote_id)

    buffer = QuoteReportService.generate_pdf(quote)
    return send_file(
        buffer,
        mimetype='application/pdf',
        as_attachment=True,
        download_name=f'quote-{quote.id}.pdf'
    )
