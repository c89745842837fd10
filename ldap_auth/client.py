from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Optional

from ldap3 import (
    Server,
    Connection,
    NONE,
    SYNC,
    SIMPLE,
    LEVEL,
    ALL_ATTRIBUTES,
)
from ldap3.core.exceptions import LDAPException
from pydantic import ValidationError

from .models import AuthResult, ClientConfig, UserRecord
from .utils import clean_str, escape_filter_value, escape_value, first_values, parse_port

log = logging.getLogger(__name__)

_CONFIG_KEYS = ("host", "port", "domain", "username", "password")
_ENDPOINT_KEYS = ("host", "port")


def _is_bool(value: Any) -> bool:
    return isinstance(value, bool)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


# Атрибуты ldap3.Connection для get_option/set_option и проверка значения.
# Неверное значение ломает следующий запрос внутри ldap3.
CONNECTION_OPTIONS = {
    "auto_referrals": _is_bool,
    "auto_range": _is_bool,
    "check_names": _is_bool,
    "read_only": _is_bool,
    "receive_timeout": lambda v: v is None or _is_int(v),
    "return_empty_attributes": _is_bool,
    "version": lambda v: _is_int(v) and v in (2, 3),
}


class DirectoryAuthClient:
    """Проверка логина/пароля и чтение данных пользователя из AD.

    Соединение открывается лениво (при первой операции, которой оно нужно)
    и принадлежит только этому объекту. Публичные методы не пробрасывают
    исключения ldap3: ошибка превращается в False/None, а подробности
    доступны через get_last_error() пока соединение открыто.

    Используйте как контекстный менеджер, чтобы соединение гарантированно
    закрылось:

        with DirectoryAuthClient() as client:
            client.configure("domain", "example")
            ok = client.check_login("jdoe", "secret")
    """

    def __init__(self, config: ClientConfig | None = None, *, client_strategy: str = SYNC) -> None:
        self._config = replace(config) if config is not None else ClientConfig()
        self._client_strategy = client_strategy
        self._connection: Connection | None = None
        self._bound = False
        self._last_exception: str | None = None

    @classmethod
    def from_env(cls, settings=None, **kwargs) -> "DirectoryAuthClient":
        """Клиент с настройками из переменных окружения LDAP_AUTH_*.

        Если окружение не проходит валидацию (например, LDAP_AUTH_PORT=abc),
        используются значения по умолчанию.
        """
        client = cls(**kwargs)
        if settings is None:
            from .env_settings import get_env
            try:
                settings = get_env()
            except ValidationError as e:
                log.warning("LDAP: некорректные переменные окружения, используются значения по умолчанию: %s", e)
                return client

        for key in _CONFIG_KEYS:
            value = getattr(settings, key, None)
            if value is None or value == "":
                continue
            if not client.configure(key, value):
                log.warning("LDAP: некорректное значение настройки %s из окружения", key)
        return client

    def __enter__(self) -> "DirectoryAuthClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, "_connection", None) is None:
            return
        try:
            self.disconnect()
        except Exception:
            pass

    @property
    def config(self) -> ClientConfig:
        return replace(self._config)

    @property
    def is_connected(self) -> bool:
        return self._connection is not None and not self._connection.closed

    @property
    def is_bound(self) -> bool:
        return self._bound

    # --- соединение ---

    def _ensure_connected(self) -> tuple[bool, str]:
        if self.is_connected:
            return True, ""

        host, port = self._config.host, self._config.port
        try:
            server = Server(host, port=port, get_info=NONE)
            conn = Connection(server, client_strategy=self._client_strategy, raise_exceptions=False)
            conn.open()
        except LDAPException as e:
            log.warning("LDAP: не удалось подключиться к %s:%s: %s", host, port, e)
            return False, str(e)

        self._connection = conn
        self._bound = False
        self._last_exception = None
        log.debug("LDAP: подключение к %s:%s открыто", host, port)
        return True, ""

    def connect(self) -> bool:
        ok, _ = self._ensure_connected()
        return ok

    def disconnect(self) -> bool:
        conn = self._connection
        if conn is None:
            self._bound = False
            return True
        try:
            conn.unbind()
        except LDAPException as e:
            log.warning("LDAP: ошибка при закрытии соединения: %s", e)
            return False

        self._connection = None
        self._bound = False
        self._last_exception = None
        log.debug("LDAP: соединение закрыто")
        return True

    def close(self) -> None:
        self.disconnect()

    # --- настройки ---

    def configure(self, key: str, value: Any) -> bool:
        """Меняет host/port/domain/username/password.

        Строки обрезаются по краям, пустые отклоняются; port должен быть
        числом. Смена host или port закрывает текущее соединение.
        """
        if not isinstance(key, str) or key not in _CONFIG_KEYS:
            return False

        parsed = parse_port(value) if key == "port" else clean_str(value)
        if parsed is None:
            return False

        setattr(self._config, key, parsed)
        if key in _ENDPOINT_KEYS:
            self.disconnect()
        return True

    def set_option(self, option: str, value: Any) -> bool:
        if not self.connect():
            return False
        validate = CONNECTION_OPTIONS.get(option) if isinstance(option, str) else None
        if validate is None or not validate(value):
            return False
        setattr(self._connection, option, value)
        return True

    def get_option(self, option: str) -> Any:
        if not self.connect():
            return None
        if not isinstance(option, str) or option not in CONNECTION_OPTIONS:
            return None
        return getattr(self._connection, option, None)

    # --- аутентификация ---

    def check_login(self, username: str, password: str) -> bool:
        """Simple bind как username[@domain] с указанным паролем."""
        if clean_str(username) is None or clean_str(password) is None:
            return False
        if not self.connect():
            return False

        identity = self._config.bind_identity(username)
        # Соединение меняет владельца: служебный bind больше не действует.
        self._bound = False
        self._last_exception = None
        try:
            ok = bool(self._connection.rebind(user=identity, password=password, authentication=SIMPLE))
        except LDAPException as e:
            self._last_exception = str(e)
            log.warning("LDAP: ошибка bind для %s: %s", identity, e)
            return False

        if not ok:
            log.info("LDAP: bind отклонён для %s: %s", identity, self.get_last_error())
        return ok

    def bind(self) -> bool:
        """Служебный bind с username/password из настроек."""
        if self._bound:
            return True
        if not self.connect():
            return False
        self._bound = self.check_login(self._config.username, self._config.password)
        return self._bound

    def authenticate(self, username: str, password: str) -> AuthResult:
        """То же, что check_login, но с результатом и текстом ошибки."""
        if not self.check_login(username, password):
            return AuthResult(
                success=False,
                error_message=self.get_last_error() or "Неверный логин или пароль.",
            )

        record = self.get_user_data(username)
        user_data = {
            "username": username,
            "display_name": (record or {}).get("displayname") or username,
            "record": record,
        }
        return AuthResult(success=True, user_data=user_data)

    # --- поиск ---

    def get_user_data(self, username: str) -> Optional[UserRecord]:
        """Первая запись с sAMAccountName=username в CN=Users[,DC=domain],DC=local.

        Для каждого атрибута берётся только первое значение.
        """
        if clean_str(username) is None:
            return None
        if not self.connect():
            return None

        # Результат не важен: при неудаче поиск пойдёт анонимно и решит сам.
        self.bind()

        base = self._config.users_base_dn
        flt = f"(samaccountname={escape_filter_value(username)})"
        self._last_exception = None
        try:
            ok = self._connection.search(
                search_base=base,
                search_filter=flt,
                search_scope=LEVEL,
                attributes=ALL_ATTRIBUTES,
                size_limit=1,
            )
        except LDAPException as e:
            self._last_exception = str(e)
            log.warning("LDAP: ошибка поиска %s в %s: %s", flt, base, e)
            return None

        if not ok:
            log.debug("LDAP: %s в %s не найден", flt, base)
            return None

        for entry in self._connection.response or []:
            if entry.get("type") == "searchResEntry":
                return first_values(entry.get("attributes"))
        return None

    # --- ошибки ---

    def get_last_error(self) -> str | None:
        """Описание последней ошибки на текущем соединении (или None)."""
        if not self.is_connected:
            return None
        if self._last_exception:
            return self._last_exception

        res = self._connection.result or {}
        code = res.get("result") or 0
        if not code:
            return None
        desc = res.get("description") or f"LDAP error {code}"
        msg = (res.get("message") or "").strip()
        return f"{desc}: {msg}" if msg else desc

    @staticmethod
    def escape(s: Any, is_dn: bool = False) -> str:
        return escape_value(s, is_dn)
