"""
인증 어댑터
"""

from adapters.auth.identity import IdentityService

__all__ = ["IdentityService"]
