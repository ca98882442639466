# app.py
import asyncio
import logging
from flask import Flask, request, jsonify
from flask_cors import CORS # For allowing frontend requests from a different port during development

import pipeline
from errors import InvalidInputError
from menu_selectors import VENDORS, DISCLAIMER
from storage import JsonFileSink

app = Flask(__name__)
CORS(app) # Enable CORS for all routes

# --- Logging Configuration ---
logging.basicConfig(level=logging.INFO,
                    format='%(asctime)s - %(levelname)s - %(name)s - %(threadName)s - %(message)s')
logger = logging.getLogger(__name__)

APP_DISCLAIMER = DISCLAIMER


def _json_payload():
    if not request.is_json:
        logger.warning("Request is not JSON")
        return None
    return request.get_json(silent=True) or {}


# --- Routes ---
@app.route('/vendors', methods=['GET'])
def list_vendors():
    """Lists the vendors that can be scraped."""
    vendors = [{"key": key, "name": v["name"], "protocol": v["protocol"]} for key, v in VENDORS.items()]
    return jsonify({"vendors": vendors, "disclaimer": APP_DISCLAIMER})


@app.route('/scrape-meal', methods=['POST'])
def handle_scrape_meal():
    """
    Scrapes the nutrition facts of one meal page.
    Expects a JSON payload with "vendor" and "url" keys.
    """
    logger.info("Received request for /scrape-meal")
    data = _json_payload()
    if data is None:
        return jsonify({"error": "Invalid request: payload must be JSON."}), 400

    vendor_key = data.get('vendor')
    meal_url = data.get('url')
    if not meal_url:
        logger.warning("URL is missing from request")
        return jsonify({"error": "URL is required."}), 400
    if not meal_url.startswith(('http://', 'https://')):
        logger.warning(f"Invalid URL format: {meal_url}")
        return jsonify({"error": "Invalid URL format. Must start with http:// or https://"}), 400

    logger.info(f"Starting scrape for URL: {meal_url}")
    try:
        record = asyncio.run(pipeline.scrape_meal(vendor_key, meal_url))
    except InvalidInputError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.critical(f"An unexpected error occurred during scraping process for {meal_url}: {e}", exc_info=True)
        return jsonify({"error": "An unexpected server error occurred. Please check server logs."}), 500

    if record is None:
        logger.error(f"Scraping failed for {meal_url}")
        return jsonify({"error": f"Could not scrape nutrition facts from {meal_url}."}), 502
    logger.info(f"Successfully scraped {meal_url}")
    return jsonify(record), 200


@app.route('/scrape-week', methods=['POST'])
def handle_scrape_week():
    """
    Scrapes and saves one weekly menu.
    Expects a JSON payload with "vendor" and "date" (YYYY-MM-DD or YYYY-Www) keys.
    """
    logger.info("Received request for /scrape-week")
    data = _json_payload()
    if data is None:
        return jsonify({"error": "Invalid request: payload must be JSON."}), 400

    vendor_key = data.get('vendor')
    date = data.get('date')
    if not date:
        return jsonify({"error": "Date is required."}), 400

    try:
        _, protocol = pipeline.select_vendor(vendor_key)
        key = pipeline.resolve_run_keys(protocol, dates=[date])[0]
        batch = asyncio.run(pipeline.scrape_week(vendor_key, key, sink=JsonFileSink()))
    except InvalidInputError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.critical(f"An unexpected error occurred while scraping week {date}: {e}", exc_info=True)
        return jsonify({"error": "An unexpected server error occurred. Please check server logs."}), 500

    return jsonify(batch), 200


if __name__ == '__main__':
    # For development, Flask's built-in server is fine.
    # For production, use a proper WSGI server like Gunicorn or Waitress.
    app.run(debug=True, port=5001)
