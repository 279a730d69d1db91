"""realtyhost - custom domain provisioning for multi-tenant real-estate sites."""

__version__ = "0.3.0"
