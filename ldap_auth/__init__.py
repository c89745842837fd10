"""Username/password authentication against Active Directory over LDAP.

Public API:
    - DirectoryAuthClient
    - ClientConfig
    - AuthResult
    - escape_value
    - setup_logging
"""

from .models import AuthResult, ClientConfig, UserRecord
from .client import DirectoryAuthClient
from .utils import escape_value
from .log_config import setup_logging

__all__ = ["DirectoryAuthClient", "ClientConfig", "AuthResult", "UserRecord", "escape_value", "setup_logging"]
