#!/usr/bin/env python3
# verify_attestation.py - Client tool to check that a verify-payment report covers its quote

import json
import sys

from attestation import canonical_bytes, extract_report_data, report_data_for
from models import Quote


def check_report_binding(quote_dict, report_hex):
    """Recompute the attestation input and compare it with the report data"""
    try:
        report = bytes.fromhex(report_hex)
        bound = extract_report_data(report)
    except ValueError as e:
        print(f"❌ Malformed report: {e}")
        return False

    try:
        quote = Quote.from_dict(quote_dict)
    except KeyError as e:
        print(f"❌ Quote is missing field {e}")
        return False

    expected = report_data_for(canonical_bytes(quote))
    if bound == expected:
        print("✅ Report data matches the quote!")
        return True
    print("❌ Report data does not match the quote!")
    print(f"   Expected: {expected.hex()}")
    print(f"   Got: {bound.hex()}")
    return False


def check_quote_field(quote_dict, field, expected_value):
    actual = quote_dict.get(field)
    if actual == expected_value:
        print(f"✅ {field} matches!")
        return True
    print(f"❌ {field} mismatch: expected {expected_value!r}, got {actual!r}")
    return False


def main(argv):
    if len(argv) < 2:
        print("Usage: verify_attestation.py <response.json> [expected-platform] [expected-payment-id]")
        return 1

    with open(argv[1], 'r') as f:
        response = json.load(f)

    # Accept either the full envelope or just its responseObject
    result = response.get("responseObject", response) if isinstance(response, dict) else None
    if not isinstance(result, dict) or not result.get("verified"):
        print("❌ Response does not carry a verified payment")
        return 1
    if not isinstance(result.get("quote"), dict) or not isinstance(result.get("raReport"), str):
        print("❌ Response is missing its quote or raReport")
        return 1

    print("🔍 Verifying attestation binding...")
    ok = check_report_binding(result["quote"], result["raReport"])

    if len(argv) > 2:
        ok = check_quote_field(result["quote"], "platform", argv[2]) and ok
    if len(argv) > 3:
        ok = check_quote_field(result["quote"], "paymentId", argv[3]) and ok

    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main(sys.argv))
