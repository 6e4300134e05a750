# routes/catalog.py
from flask import jsonify

from .. import logger
from . import catalog_bp
from ..services.catalog_service import load_wizard_options


@catalog_bp.route("/options", methods=["GET"])
def wizard_options():
    """
    Materials, colours and processes a customer can pick in the quote
    wizard, plus the valid material/colour combinations.

    Response 200
    {
      "materials": [{"id": "1", "name": "PLA", "pricePerGram": 0.05}],
      "colours": [{"id": "3", "name": "Galaxy Black", "finish": "regular",
                   "type": "solid", "swatches": ["#111111"]}],
      "processes": [{"id": "2", "name": "Standard 0.2mm"}],
      "combinations": [{"materialId": "1", "colourId": "3"}]
    }
    """
    try:
        return jsonify(load_wizard_options()), 200
    except Exception as e:
        logger.error(f"Error loading wizard options: {str(e)}")
        return jsonify({"error": "Internal server error"}), 500
