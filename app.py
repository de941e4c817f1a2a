import binascii
import logging

from flask import Blueprint, Flask, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from auth import require_auth
from config import configure_logging, load_settings
from errors import (
    AttestationError,
    DecryptionError,
    EncryptionError,
    KeyDerivationError,
    ProviderFetchError,
)
from models import EncryptedCredential, PaymentClaim, Stage, is_supported_currency
from orchestrator import build_service

logger = logging.getLogger(__name__)

NOT_VERIFIED_MESSAGE = "No matching transaction found"

validator_bp = Blueprint("validator", __name__)
health_bp = Blueprint("health", __name__)


# --- Response envelope ---
def service_response(success, message, response_object, status_code=200):
    body = {
        "success": success,
        "message": message,
        "responseObject": response_object,
        "statusCode": status_code,
    }
    return jsonify(body), status_code


def _failure(message, response_object, status_code):
    return service_response(False, message, response_object, status_code)


def _service():
    return current_app.config["VERIFICATION_SERVICE"]


def _json_body():
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


@health_bp.route("/health-check", methods=["GET"])
def health_check():
    return service_response(True, "Service is healthy", None)


@validator_bp.route("/encrypt", methods=["POST"])
@require_auth
def encrypt_credentials():
    empty = {"encryptedCredentials": "", "encryptionIV": "", "success": False}
    api_key = _json_body().get("wiseApiKey")
    if not api_key or not isinstance(api_key, str):
        return _failure("Missing required API key", empty, 400)

    try:
        encrypted = _service().encrypt_credential(api_key)
    except (KeyDerivationError, EncryptionError) as e:
        logger.error("Error encrypting credentials: %s", e.message)
        return _failure(f"Error encrypting credentials: {e.message}", empty, 500)

    return service_response(True, "Credentials encrypted successfully", {**encrypted.to_b64(), "success": True})


@validator_bp.route("/verify-payment", methods=["POST"])
@require_auth
def verify_payment():
    body = _json_body()
    unverified = {"verified": False}

    # 1. Validate the request shape
    if not body.get("encryptedCredentials"):
        return _failure("Missing encrypted credentials", unverified, 400)
    if not body.get("encryptionIV"):
        return _failure("Missing encryption initialization vector (IV)", unverified, 400)
    details = body.get("wisePaymentDetails")
    if not isinstance(details, dict):
        return _failure("Missing Wise payment details", unverified, 400)

    amount, currency, timestamp = (details.get(k) for k in ("amount", "currency", "timestamp"))
    if not amount or not currency or not timestamp:
        return _failure(
            "Missing required Wise payment details. All fields (amount, currency, timestamp) are required",
            unverified,
            400,
        )
    if not all(isinstance(v, str) for v in (amount, currency, timestamp)):
        return _failure("Wise payment details amount, currency and timestamp must be strings", unverified, 400)
    status = details.get("paymentStatus") or "COMPLETED"
    if not isinstance(status, str):
        return _failure("Wise payment details paymentStatus must be a string", unverified, 400)
    if not is_supported_currency(currency):
        return _failure(f"Unsupported currency: {currency}", unverified, 400)

    claim = PaymentClaim(
        amount=amount,
        currency=currency,
        timestamp=timestamp,
        status=status,
    )

    # 2. Decode the credential; bad base64 looks the same as a bad ciphertext
    try:
        encrypted = EncryptedCredential.from_b64(body["encryptedCredentials"], body["encryptionIV"])
    except (binascii.Error, ValueError, TypeError):
        return service_response(True, "Payment not verified", {"verified": False, "message": NOT_VERIFIED_MESSAGE})

    # 3. Run the pipeline
    outcome = _service().verify_payment(encrypted, claim)

    if outcome.verified:
        return service_response(True, "Payment verified", {
            "verified": True,
            "quote": outcome.quote.to_dict(),
            "raReport": outcome.report.hex(),
        })

    failure = outcome.failure
    if failure is None or isinstance(failure.error, DecryptionError):
        return service_response(True, "Payment not verified", {"verified": False, "message": NOT_VERIFIED_MESSAGE})

    message = f"Error verifying payment: {failure.message}"
    status = 502 if isinstance(failure.error, ProviderFetchError) else 500
    return _failure(message, {"verified": False, "stage": failure.stage.value}, status)


@validator_bp.route("/ra-report", methods=["POST"])
@require_auth
def ra_report():
    user_data = _json_body().get("userData") or ""
    if not isinstance(user_data, str):
        return _failure("userData must be a string", {"report": ""}, 400)

    try:
        report = _service().generate_report(user_data)
    except AttestationError as e:
        logger.error("Error generating RA report: %s", e.message)
        return _failure(f"Error generating RA report: {e.message}", {"report": "", "stage": Stage.ATTEST.value}, 500)

    return service_response(True, "RA report generated", {"report": report.hex()})


def create_app(service=None, settings=None):
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = Flask(__name__)
    app.config["SETTINGS"] = settings
    app.config["VERIFICATION_SERVICE"] = service or build_service(settings)
    app.register_blueprint(health_bp, url_prefix="/v1")
    app.register_blueprint(validator_bp, url_prefix="/v1/validator")

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        if isinstance(e, HTTPException):
            return e
        logger.exception("Unhandled error on %s", request.path)
        return _failure("An unexpected error occurred", None, 500)

    return app


if __name__ == '__main__':
    # Gunicorn will be used in production: gunicorn "app:create_app()"
    _settings = load_settings()
    create_app(settings=_settings).run(host=_settings.host, port=_settings.port)
