from marshmallow import Schema, fields, validate, post_load, EXCLUDE

from ..models.quote import QuoteStatus

NOTES_MAX_LENGTH = 2000


class QuoteItemCreateSchema(Schema):
    """
    One model and its print preferences as submitted by the quote wizard.
    Derived fields (filament, line amount) and staff pricing fields are
    dropped if a client sends them.
    """

    class Meta:
        unknown = EXCLUDE

    model = fields.Integer(required=True, validate=validate.Range(min=1),
                           metadata={"description": "ID of the uploaded model."})
    material = fields.Integer(required=True, validate=validate.Range(min=1))
    colour = fields.Integer(required=True, validate=validate.Range(min=1))
    process = fields.Integer(required=True, validate=validate.Range(min=1))
    quantity = fields.Integer(validate=validate.Range(min=1), load_default=1)


class QuoteCreateSchema(Schema):
    """
    Public quote request.
    - customerEmail is required by the save hooks when the requester is not
      logged in.
    - notes are trimmed; blank notes are dropped.
    """

    class Meta:
        unknown = EXCLUDE

    items = fields.List(
        fields.Nested(QuoteItemCreateSchema),
        required=True,
        validate=validate.Length(min=1, error="Add at least one model to your quote.")
    )
    customer_email = fields.Email(
        data_key="customerEmail",
        allow_none=True,
        load_default=None,
        metadata={"description": "Contact email for guests."}
    )
    notes = fields.String(allow_none=True, load_default=None, validate=validate.Length(max=NOTES_MAX_LENGTH))

    @post_load
    def clean_notes(self, data, **kwargs):
        notes = data.get('notes')
        data['notes'] = (notes.strip() or None) if isinstance(notes, str) else None
        return data


class QuoteItemUpdateSchema(Schema):
    id = fields.Integer(required=True)
    quantity = fields.Integer(validate=validate.Range(min=1))
    grams = fields.Float(allow_none=True, validate=validate.Range(min=0))
    price_override = fields.Float(data_key="priceOverride", allow_none=True, validate=validate.Range(min=0))


class QuoteUpdateSchema(Schema):
    """Staff edit of a quote: review status, notes and per-item pricing inputs"""
    status = fields.String(validate=validate.OneOf([status.value for status in QuoteStatus]))
    notes = fields.String(allow_none=True, validate=validate.Length(max=NOTES_MAX_LENGTH))
    currency = fields.String(validate=validate.Length(equal=3))
    items = fields.List(fields.Nested(QuoteItemUpdateSchema))


class QuoteLookupSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.String(load_default=None)
