"""Shared fixtures for the printshop test suite."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from flask import g
from flask_login import FlaskLoginClient

from printshop import create_app, db
from printshop.models.catalog import (
    Colour,
    ColourSwatch,
    Filament,
    Material,
    Process,
    Vendor,
)
from printshop.models.model_file import Model
from printshop.models.settings import Settings
from printshop.models.user import Role, User


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


@pytest.fixture()
def app(tmp_path):
    """A testing app on in-memory SQLite, with its app context pushed."""
    app = create_app('testing')
    app.config['UPLOAD_FOLDER'] = str(tmp_path / 'models')
    app.test_client_class = FlaskLoginClient

    # g outlives single requests while the fixture holds the app context
    @app.before_request
    def reset_login_user():
        g.pop("_login_user", None)

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    """Guest client."""
    return app.test_client()


@pytest.fixture()
def customer_client(app, customer):
    return app.test_client(user=customer)


@pytest.fixture()
def staff_client(app, staff):
    return app.test_client(user=staff)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


def _make_user(email, role_name):
    user = User(
        email=email,
        first_name='Test',
        last_name=role_name.title(),
        role=Role.query.filter_by(name=role_name).first(),
    )
    user.password = 'correct horse battery staple'
    user.save()
    return user


@pytest.fixture()
def customer(app):
    return _make_user('jane@example.com', 'customer')


@pytest.fixture()
def staff(app):
    return _make_user('staff@printshop.test', 'staff')


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@pytest.fixture()
def settings(app):
    row = Settings(price_per_gram=0.02, currency='USD')
    row.save()
    return row


@pytest.fixture()
def catalog(app, settings):
    """
    PLA has its own price; PETG falls back to the settings default.

    Active filaments: PLA/Black, PLA/White, PETG/Black.
    Inactive: PETG/White, PLA/Gold (so Gold is never offered).
    """
    vendor = Vendor(name='Polymaker')
    pla = Material(name='PLA', price_per_gram=0.05)
    petg = Material(name='PETG')
    black = Colour(name='Black', swatches=[ColourSwatch(hexcode='#111111', position=0)])
    white = Colour(name='White', swatches=[ColourSwatch(hexcode='#FFFFFF', position=0)])
    gold = Colour(name='Gold')
    standard = Process(name='Standard 0.2mm')
    draft = Process(name='Draft 0.3mm', active=False)
    db.session.add_all([vendor, pla, petg, black, white, gold, standard, draft])
    db.session.commit()

    filaments = {
        'pla_black': Filament(name='PLA Black', material=pla, colour=black, vendor=vendor),
        'pla_white': Filament(name='PLA White', material=pla, colour=white, vendor=vendor),
        'petg_black': Filament(name='PETG Black', material=petg, colour=black, vendor=vendor),
        'petg_white': Filament(name='PETG White', material=petg, colour=white, vendor=vendor, active=False),
        'pla_gold': Filament(name='PLA Gold', material=pla, colour=gold, vendor=vendor, active=False),
    }
    for filament in filaments.values():
        db.session.add(filament)
    db.session.commit()

    return SimpleNamespace(
        vendor=vendor,
        pla=pla,
        petg=petg,
        black=black,
        white=white,
        gold=gold,
        standard=standard,
        draft=draft,
        **filaments,
    )


@pytest.fixture()
def model_file(app):
    model = Model(filename='bracket.stl', stored_filename='abc123-bracket.stl', size=2048)
    model.save()
    return model


@pytest.fixture()
def second_model_file(app):
    model = Model(filename='hinge.stl', stored_filename='def456-hinge.stl', size=4096)
    model.save()
    return model


@pytest.fixture()
def quote_item(catalog, model_file):
    """Valid item payload as the wizard submits it."""
    def make(**overrides):
        item = {
            'model': model_file.id,
            'material': catalog.pla.id,
            'colour': catalog.black.id,
            'process': catalog.standard.id,
            'quantity': 1,
        }
        item.update(overrides)
        return item
    return make
