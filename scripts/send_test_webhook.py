"""Send a (optionally signed) delivery to a running hookwise instance.

Usage: python scripts/send_test_webhook.py <webhook_url> [--unsigned]
The webhook secret is read from WEBHOOK_SECRET (.env is honoured).
"""
import json
import os
import sys

import requests
from dotenv import load_dotenv

from hookwise.verify_signature import SIGNATURE_HEADER, sign_payload

# Load .env variables
load_dotenv()

if len(sys.argv) < 2:
    sys.exit(__doc__)

url = sys.argv[1]
unsigned = "--unsigned" in sys.argv[2:]
secret = os.getenv("WEBHOOK_SECRET", "")

# Payload to send
payload = {
    "event": "order.created",
    "order": {"id": "ord_123", "total": 42.5},
}

# Convert payload to JSON bytes
data = json.dumps(payload).encode("utf-8")

headers = {"Content-Type": "application/json"}
if not unsigned:
    if not secret:
        sys.exit("WEBHOOK_SECRET is not set (pass --unsigned to skip signing)")
    headers[SIGNATURE_HEADER] = sign_payload(secret, data)

resp = requests.post(url, headers=headers, data=data, timeout=10)

print("Status:", resp.status_code)
print("Response:", resp.text)
