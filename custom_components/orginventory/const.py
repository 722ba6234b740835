"""Constants for the OrgInventory integration.

Defines the integration domain, the public integration version and the
storage key of the persisted document.
"""

# Integration domain used across all modules
DOMAIN: str = "orginventory"

# Public integration version (kept in sync with manifest.json)
INTEGRATION_VERSION: str = "0.1.0"

# Name of the single persisted document under <config>/.storage
STORAGE_KEY: str = "orginventory.organizations"

DEFAULT_CURRENCY: str = "USD"

NAME_MAX_LENGTH: int = 120

# Largest quantity (and absolute delta) the JSON encoder can store as an integer
QUANTITY_MAX: int = 2**63 - 1
