from __future__ import annotations

import os
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, SecretStr


class SecretResolver:
    """Resolves ``${provider:key}`` references in loaded configuration.

    Only the ``env`` provider is registered by default.
    """

    def __init__(self):
        self._providers: Dict[str, Callable[[str], Optional[str]]] = {
            "env": os.environ.get,
        }

    def register_provider(self, provider_id: str, lookup: Callable[[str], Optional[str]]) -> None:
        self._providers[provider_id] = lookup

    @staticmethod
    def is_reference(value: str) -> bool:
        return value.startswith("${") and value.endswith("}")

    def resolve(self, secret_ref: str) -> str:
        """Resolves a secret reference string.

        Raises:
            ValueError: If the format is invalid, the provider is unknown, or
                the secret is not found.
        """
        cleaned_ref = secret_ref[2:-1]
        parts = cleaned_ref.split(":", 1)
        if len(parts) != 2:
            raise ValueError(f"Invalid secret format '{secret_ref}'. Expected '${{provider_id:key}}'.")

        provider_id, key = parts
        lookup = self._providers.get(provider_id)
        if lookup is None:
            raise ValueError(f"Unknown secret provider ID: '{provider_id}'")

        value = lookup(key)
        if value is not None:
            return value
        raise ValueError(f"Secret not found: {secret_ref}")

    def resolve_object(self, obj: Any) -> Any:
        """Recursively resolves references in models, dicts, lists and strings."""
        if isinstance(obj, str):
            return self.resolve(obj) if self.is_reference(obj) else obj

        if isinstance(obj, SecretStr):
            secret_val = obj.get_secret_value()
            if secret_val and self.is_reference(secret_val):
                return SecretStr(self.resolve(secret_val))
            return obj

        if isinstance(obj, BaseModel):
            updates = {}
            for field_name in type(obj).model_fields.keys():
                val = getattr(obj, field_name)
                resolved = self.resolve_object(val)
                if resolved is not val:
                    updates[field_name] = resolved
            if updates:
                return obj.model_copy(update=updates)
            return obj

        if isinstance(obj, list):
            return [self.resolve_object(item) for item in obj]

        if isinstance(obj, dict):
            return {k: self.resolve_object(v) for k, v in obj.items()}

        return obj


secret_resolver = SecretResolver()
