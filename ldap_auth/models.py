from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

from .utils import escape_dn_value, users_base_dn

# Атрибут (в нижнем регистре) -> первое значение.
UserRecord = Dict[str, Any]


@dataclass
class ClientConfig:
    host: str = "localhost"
    port: int = 389
    domain: str = ""
    username: str = ""
    password: str = field(default="", repr=False)

    @property
    def users_base_dn(self) -> str:
        return users_base_dn(self.domain)

    def bind_identity(self, username: str) -> str:
        """username@domain (оба компонента экранированы как DN)."""
        identity = escape_dn_value(username)
        if self.domain:
            identity += "@" + escape_dn_value(self.domain)
        return identity


@dataclass
class AuthResult:
    """Результат аутентификации пользователя."""
    success: bool
    user_data: dict | None = None
    error_message: str = ""
