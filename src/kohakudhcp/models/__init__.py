"""Value types, enums and request models."""
