# wise_client.py - Fetches and normalizes account activity from the Wise API

import logging
import re

import requests

from errors import ProviderFetchError
from matcher import normalize_transactions, parse_amount
from models import RECEIVED, SENT, ProviderTransaction

logger = logging.getLogger(__name__)

PROFILES_PATH = "/v2/profiles"
ACTIVITIES_PATH = "/v1/profiles/{profile_id}/activities"
ACTIVITY_PAGE_SIZE = 100
MAX_ACTIVITY_PAGES = 10

# e.g. "+ 1,500.00 USD", "<positive>+ 10 EUR</positive>", "100.00 GBP"
_AMOUNT_RE = re.compile(r"^\s*([+-]?)\s*([0-9][0-9,]*(?:\.[0-9]+)?)\s+([A-Z]{3})\s*$")
_TAG_RE = re.compile(r"<[^>]+>")


def parse_primary_amount(text):
    """(type, amount, currency) from a Wise activity primaryAmount string."""
    cleaned = _TAG_RE.sub("", text or "")
    m = _AMOUNT_RE.match(cleaned)
    if not m:
        raise ValueError(f"unrecognised amount {text!r}")
    sign, number, currency = m.groups()
    amount = parse_amount(number.replace(",", ""))
    if amount is None:
        raise ValueError(f"unrecognised amount {text!r}")
    return (RECEIVED if sign == "+" else SENT), amount, currency


class WiseClient:
    def __init__(self, base_url, timeout=30.0, session=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get(self, credential, path, params=None):
        try:
            response = self.session.get(
                self.base_url + path,
                headers={"Authorization": f"Bearer {credential}", "Accept": "application/json"},
                params=params,
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else "?"
            raise ProviderFetchError(f"Wise API request failed with status {status}") from e
        except requests.exceptions.RequestException as e:
            raise ProviderFetchError(f"Wise API request failed: {type(e).__name__}") from e
        except ValueError as e:
            raise ProviderFetchError("Wise API returned an invalid JSON body") from e

    def get_profile_id(self, credential):
        profiles = self._get(credential, PROFILES_PATH)
        if not isinstance(profiles, list) or not profiles:
            raise ProviderFetchError("No Wise profile found for credential")
        personal = [p for p in profiles if str(p.get("type", "")).upper() == "PERSONAL"]
        profile = (personal or profiles)[0]
        if "id" not in profile:
            raise ProviderFetchError("Wise profile has no id")
        return str(profile["id"])

    def get_transactions(self, credential):
        profile_id = self.get_profile_id(credential)
        logger.info("Fetching Wise activities for profile %s", profile_id)
        activities = []
        cursor = None
        # newest first; stops after MAX_ACTIVITY_PAGES pages
        for _ in range(MAX_ACTIVITY_PAGES):
            params = {"size": ACTIVITY_PAGE_SIZE}
            if cursor:
                params["nextCursor"] = cursor
            body = self._get(credential, ACTIVITIES_PATH.format(profile_id=profile_id), params=params)
            page = body.get("activities") if isinstance(body, dict) else None
            if not isinstance(page, list):
                raise ProviderFetchError("Wise API returned no activity list")
            activities.extend(page)
            cursor = body.get("cursor")
            if not cursor or not page:
                break
        else:
            logger.warning("Stopped after %d activity pages for profile %s", MAX_ACTIVITY_PAGES, profile_id)

        return normalize_transactions(activities, lambda a: self._to_transaction(a, profile_id))

    @staticmethod
    def _to_transaction(activity, profile_id):
        direction, amount, currency = parse_primary_amount(activity["primaryAmount"])
        resource = activity.get("resource") or {}
        return ProviderTransaction(
            payment_id=str(resource.get("id") or activity["id"]),
            amount=amount,
            currency=currency,
            date=activity["createdOn"],
            status=activity["status"],
            type=direction,
            recipient_id=profile_id if direction == RECEIVED else "",
        )
