from __future__ import annotations

import logging

LOGGER = logging.getLogger("rcsdk.platform")
SDK_VERSION = "0.1.0"

PRODUCTION_SERVER_URL = "https://platform.ringcentral.com"

UNTUNNELED_METHODS = {"GET", "POST"}
METHOD_OVERRIDE_HEADER = "X-HTTP-Method-Override"
REQUEST_ID_HEADER = "RCRequestId"
