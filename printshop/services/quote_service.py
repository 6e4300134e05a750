# services/quote_service.py
import copy
from typing import Dict, List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from .. import db, logger
from ..models.catalog import Material, Colour, Process
from ..models.model_file import Model
from ..models.quote import Quote, QuoteItem, QuoteStatus
from .catalog_service import FilamentResolver, resolve_relation_id
from .gcode_service import create_quote_gcodes
from .pricing_service import PricingEngine, load_pricing_settings, normalize_quantity

CONTACT_EMAIL_REQUIRED = 'Please include a contact email so we can follow up about your quote.'


class QuoteValidationError(ValueError):
    """A save was rejected; the message is written for the customer."""


class QuoteNotFoundError(LookupError):
    """The quote does not exist or is not visible to the requester."""


def _is_authenticated(user) -> bool:
    return user is not None and bool(getattr(user, 'is_authenticated', False))


def normalize_quote_customer(data: Optional[Dict], original: Optional[Dict] = None, user=None):
    """
    Before-save hook resolving who the quote belongs to.

    Precedence: a customer id already on the quote (incoming or persisted),
    then a contact email (incoming or persisted), then the authenticated
    requester. A guest with neither is rejected.
    """
    if data is None:
        return data

    authenticated = _is_authenticated(user)
    original = original or {}

    email = data.get('customer_email')
    if isinstance(email, str):
        email = email.strip()
        if not authenticated:
            email = email.lower()
        data['customer_email'] = email or None

    existing_email = data.get('customer_email')
    if not existing_email and isinstance(original.get('customer_email'), str):
        existing_email = original['customer_email'] or None

    existing_customer = resolve_relation_id(data.get('customer'))
    if existing_customer is None:
        existing_customer = resolve_relation_id(original.get('customer'))

    if existing_customer is not None:
        data['customer'] = existing_customer
    elif existing_email:
        data['customer_email'] = existing_email
    elif authenticated:
        data['customer'] = user.id
    else:
        raise QuoteValidationError(CONTACT_EMAIL_REQUIRED)

    return data


def resolve_quote_items_and_amount(data: Optional[Dict], original: Optional[Dict] = None, user=None):
    """
    Before-save hook deriving filament, quantity and line_amount for every
    item and the quote's amount and currency.

    Client-supplied filament and line_amount values are always replaced.
    Empty entries in ``items`` are passed through untouched.
    """
    if data is None:
        return data

    default_currency = current_app.config.get('DEFAULT_CURRENCY', 'USD')
    settings = load_pricing_settings(default_currency)
    total_amount = 0

    items = data.get('items')
    if isinstance(items, list) and items:
        resolver = FilamentResolver()
        engine = PricingEngine(settings)
        normalized_items = []

        for item in items:
            if not item:
                normalized_items.append(item)
                continue

            quantity = normalize_quantity(item.get('quantity'))
            filament = resolver.resolve(item.get('material'), item.get('colour'))
            line_amount = engine.price_line(dict(item, quantity=quantity))
            total_amount += line_amount

            normalized_items.append(dict(
                item,
                filament=filament,
                quantity=quantity,
                line_amount=line_amount
            ))

        data['items'] = normalized_items

    data['amount'] = total_amount
    if not data.get('currency'):
        data['currency'] = settings.currency or default_currency

    return data


BEFORE_CHANGE_HOOKS = (normalize_quote_customer, resolve_quote_items_and_amount)
AFTER_CHANGE_HOOKS = (create_quote_gcodes,)

STAFF_EDITABLE_ITEM_FIELDS = ('grams', 'price_override', 'quantity')


class QuoteService:
    """
    Persists quotes through the before/after change hooks.

    Every create and update runs BEFORE_CHANGE_HOOKS on plain data before
    anything is written; an exception from any hook aborts the save. After
    the commit, AFTER_CHANGE_HOOKS receive the persisted document.
    """

    @classmethod
    def create_quote(cls, data: Dict, user=None) -> Quote:
        """
        Creates a quote from a validated submission.

        Args:
            data: {
                'items': [{'model', 'material', 'colour', 'process', 'quantity'}],
                'customer_email': str (optional),
                'notes': str (optional)
            }
            user: the authenticated requester, or None for a guest
        """
        logger.info(f"Creating quote with {len(data.get('items') or [])} item(s)")

        document = copy.deepcopy(dict(data))
        document.setdefault('status', QuoteStatus.NEW.value)
        cls._validate_references(document.get('items'), require_active_process=True)

        document = cls._run_before_change(document, None, user)

        quote = Quote()
        try:
            cls._apply_document(quote, document)
            quote.save()
        except Exception as e:
            logger.error(f"Error creating quote: {str(e)}")
            raise

        logger.info(f"Quote {quote.id} created, amount {quote.amount} {quote.currency}")
        cls._run_after_change(quote, 'create')
        return quote

    @classmethod
    def update_quote(cls, quote_id: int, changes: Dict, user=None) -> Quote:
        """
        Applies a staff edit (status, notes, currency and per-item grams,
        price_override, quantity) and re-runs the save hooks.
        """
        quote = Quote.get_by_id(quote_id)
        if quote is None:
            raise QuoteNotFoundError(f"Quote {quote_id} not found")

        original = quote.to_document()
        document = cls._merge_changes(original, changes)
        document = cls._run_before_change(document, original, user)

        try:
            cls._apply_document(quote, document)
            quote.save()
        except Exception as e:
            logger.error(f"Error updating quote {quote_id}: {str(e)}")
            raise

        logger.info(f"Quote {quote.id} updated, status {quote.status.value}, amount {quote.amount}")
        cls._run_after_change(quote, 'update')
        return quote

    @staticmethod
    def delete_quote(quote_id: int) -> None:
        quote = Quote.get_by_id(quote_id)
        if quote is None:
            raise QuoteNotFoundError(f"Quote {quote_id} not found")
        quote.delete()
        logger.info(f"Quote {quote_id} deleted")

    @staticmethod
    def list_quotes_for_customer(user) -> List[Quote]:
        """Quotes linked to ``user``, newest first"""
        if not _is_authenticated(user):
            return []
        return (
            Quote.query
            .filter(Quote.customer_id == user.id)
            .order_by(Quote.created_at.desc(), Quote.id.desc())
            .all()
        )

    @staticmethod
    def find_quote_for_lookup(quote_id: int, user=None, email: Optional[str] = None) -> Quote:
        """
        Status lookup. Authenticated users see their own quotes (staff see
        all); guests must supply the email the quote was filed under or the
        email of its linked customer, compared case-insensitively.
        """
        quote = Quote.get_by_id(quote_id)
        if quote is None:
            raise QuoteNotFoundError(f"Quote {quote_id} not found")

        if _is_authenticated(user):
            if getattr(user, 'is_staff', False) or quote.customer_id == user.id:
                return quote
            raise QuoteNotFoundError(f"Quote {quote_id} not found")

        lookup_email = (email or '').strip().lower()
        if not lookup_email:
            raise QuoteNotFoundError(f"Quote {quote_id} not found")

        if quote.customer_email and quote.customer_email.lower() == lookup_email:
            return quote
        if quote.customer is not None and quote.customer.email.lower() == lookup_email:
            return quote

        logger.info(f"Quote {quote_id} lookup rejected for {lookup_email}")
        raise QuoteNotFoundError(f"Quote {quote_id} not found")

    @staticmethod
    def _run_before_change(document: Dict, original: Optional[Dict], user) -> Dict:
        for hook in BEFORE_CHANGE_HOOKS:
            document = hook(document, original=original, user=user)
        return document

    @staticmethod
    def _run_after_change(quote: Quote, operation: str) -> None:
        doc = quote.to_document()
        for hook in AFTER_CHANGE_HOOKS:
            try:
                hook(doc, operation)
            except SQLAlchemyError as e:
                # The quote is committed; the next save retries the hook.
                logger.error(f"{hook.__name__} failed for quote {doc.get('id')}: {str(e)}")
                db.session.rollback()

    @staticmethod
    def _merge_changes(original: Dict, changes: Dict) -> Dict:
        document = copy.deepcopy(original)

        for field in ('status', 'notes', 'currency'):
            if field in changes:
                document[field] = changes[field]

        item_changes = {change['id']: change for change in changes.get('items') or []}
        unknown = set(item_changes) - {item['id'] for item in document['items']}
        if unknown:
            raise QuoteValidationError("One of the edited items does not belong to this quote.")

        for item in document['items']:
            change = item_changes.get(item['id'])
            if not change:
                continue
            for field in STAFF_EDITABLE_ITEM_FIELDS:
                if field in change:
                    item[field] = change[field]

        return document

    @staticmethod
    def _validate_references(items: Optional[List[Dict]], require_active_process: bool = False) -> None:
        items = [item for item in items or [] if item]
        if not items:
            raise QuoteValidationError("Add at least one model to your quote.")

        checks = (
            ('model', Model, "One of the uploaded models could not be found. Please upload it again."),
            ('material', Material, "One of the selected materials is no longer available."),
            ('colour', Colour, "One of the selected colours is no longer available."),
            ('process', Process, "One of the selected processes is no longer available."),
        )
        for field, model_class, message in checks:
            ids = [resolve_relation_id(item.get(field)) for item in items]
            if any(value is None for value in ids) or set(ids) - model_class.existing_ids(ids):
                raise QuoteValidationError(message)

        if require_active_process:
            process_ids = {resolve_relation_id(item.get('process')) for item in items}
            active = db.session.query(Process.id).filter(
                Process.id.in_(process_ids),
                Process.active.is_(True)
            ).count()
            if active != len(process_ids):
                raise QuoteValidationError("One of the selected processes is no longer available.")

    @staticmethod
    def _apply_document(quote: Quote, document: Dict) -> None:
        quote.customer_id = resolve_relation_id(document.get('customer'))
        quote.customer_email = document.get('customer_email') or None
        quote.status = QuoteStatus(document.get('status') or QuoteStatus.NEW.value)
        quote.amount = document.get('amount') or 0
        quote.currency = document.get('currency')
        quote.notes = document.get('notes') or None

        existing = {item.id: item for item in quote.items}
        items = []
        for position, item in enumerate(item for item in document.get('items') or [] if item):
            record = existing.get(item.get('id')) or QuoteItem()
            record.position = position
            record.model_id = resolve_relation_id(item.get('model'))
            record.material_id = resolve_relation_id(item.get('material'))
            record.colour_id = resolve_relation_id(item.get('colour'))
            record.process_id = resolve_relation_id(item.get('process'))
            record.filament_id = item.get('filament')
            record.quantity = item.get('quantity') or 1
            record.grams = item.get('grams')
            record.price_override = item.get('price_override')
            record.line_amount = item.get('line_amount') or 0
            items.append(record)
        quote.items = items
