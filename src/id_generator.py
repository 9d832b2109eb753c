# src/id_generator.py
"""
Typed Public ID Generator for Teranga
Generates IDs in format: PREFIX-TIMESTAMP-RANDOM
Example: PUR-1699564234-A7K9M2
"""

import secrets
import string
import time


# Prefix mapping for all resource types
PREFIX_MAP = {
    "user": "USR",
    "developer": "DEV",
    "property": "PRP",
    "purchase": "PUR",
    "document": "DOC",
}

_RANDOM_ALPHABET = string.ascii_uppercase + string.digits


def generate_public_id(prefix: str) -> str:
    """
    Generate a typed public ID with format: PREFIX-TIMESTAMP-RANDOM

    Args:
        prefix: 3-letter type prefix (e.g., "USR", "PUR") or resource type name (e.g., "purchase")

    Returns:
        str: Public ID in format PREFIX-TIMESTAMP-RANDOM
        Example: "PUR-1699564234-A7K9M2"

    Security notes:
        - Timestamp provides chronological sortability
        - Random component prevents enumeration attacks
    """
    # If prefix is a resource type name, look it up in PREFIX_MAP
    if prefix in PREFIX_MAP:
        prefix = PREFIX_MAP[prefix]

    timestamp = int(time.time())
    random_part = "".join(secrets.choice(_RANDOM_ALPHABET) for _ in range(6))

    return f"{prefix}-{timestamp}-{random_part}"


def generate_user_id() -> str:
    """Generate a user public ID: USR-1699564234-A7K9M2"""
    return generate_public_id(PREFIX_MAP["user"])


def generate_purchase_id() -> str:
    """Generate a purchase ID: PUR-1699564234-Q4W8E2"""
    return generate_public_id(PREFIX_MAP["purchase"])


def generate_document_id() -> str:
    """Generate a loan-application document ID: DOC-1699564234-Z5R7N4"""
    return generate_public_id(PREFIX_MAP["document"])


def parse_public_id(public_id: str) -> dict:
    """
    Parse a public ID into its components.

    Example:
        >>> parse_public_id("PUR-1699564234-A7K9M2")
        {
            "prefix": "PUR",
            "timestamp": 1699564234,
            "random": "A7K9M2",
            "resource_type": "purchase"
        }
    """
    try:
        parts = public_id.split("-")
        if len(parts) != 3:
            raise ValueError(f"Invalid public ID format: {public_id}")

        prefix, timestamp_str, random_part = parts

        # Reverse lookup resource type from prefix
        resource_type = None
        for rtype, rpref in PREFIX_MAP.items():
            if rpref == prefix:
                resource_type = rtype
                break

        return {
            "prefix": prefix,
            "timestamp": int(timestamp_str),
            "random": random_part,
            "resource_type": resource_type,
        }
    except (ValueError, IndexError) as e:
        raise ValueError(f"Failed to parse public ID '{public_id}': {e}")


def validate_public_id(public_id: str, expected_prefix: str = None) -> bool:
    """
    Validate a public ID format and optionally check the prefix.

    Example:
        >>> validate_public_id("PUR-1699564234-A7K9M2", "PUR")
        True
        >>> validate_public_id("USR-1699564234-A7K9M2", "PUR")
        False
    """
    try:
        parsed = parse_public_id(public_id)

        if expected_prefix and parsed["prefix"] != expected_prefix:
            return False
        if not parsed["prefix"].isupper():
            return False
        if not parsed["random"].isalnum() or len(parsed["random"]) != 6:
            return False

        return True
    except (ValueError, KeyError):
        return False


__all__ = [
    "PREFIX_MAP",
    "generate_public_id",
    "generate_user_id",
    "generate_purchase_id",
    "generate_document_id",
    "parse_public_id",
    "validate_public_id",
]
