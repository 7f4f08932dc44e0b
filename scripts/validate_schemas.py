"""Meta-validates the viewer message schemas and checks them against sample messages."""

from pathlib import Path
import json
from jsonschema import Draft202012Validator


SCHEMA_DIR = Path(__file__).resolve().parent.parent / "livebid" / "schemas"

# (schema, message, expected to validate)
SAMPLE_MESSAGES = [
    ("bid", {"type": "bid", "bidder": "alice", "amount": 150}, True),
    ("bid", {"type": "bid", "bidder": "bob", "amount": "175"}, True),
    ("bid", {"type": "bid", "bidder": "", "amount": 10}, False),
    ("bid", {"type": "bid", "bidder": "carol"}, False),
    ("start", {"type": "start", "item_name": "Vase", "opening_price": 100}, True),
    ("start", {"type": "start", "item_name": "Vase", "opening_price": -1}, False),
    ("start", {"type": "start", "item_name": "Vase", "opening_price": 2**53}, False),
    ("start", {"type": "start", "item_name": "Vase", "opening_price": "100"}, False),
]


def validate() -> None:
    validators = {}
    for schema in SCHEMA_DIR.glob("*.json"):
        data = json.loads(schema.read_text())
        Draft202012Validator.check_schema(data)
        validators[schema.stem] = Draft202012Validator(data)

    for name, message, expected in SAMPLE_MESSAGES:
        valid = validators[name].is_valid(message)
        if valid != expected:
            verdict = "rejected" if expected else "accepted"
            raise SystemExit(f"{name} schema {verdict} sample {message!r}")


if __name__ == "__main__":
    validate()
