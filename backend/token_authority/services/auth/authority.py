# token_authority/services/auth/authority.py
from __future__ import annotations

import logging

from token_authority.services._shared.errors import TokenError
from token_authority.services.auth.validator import LocalTokenValidator

log = logging.getLogger(__name__)


class LocalTokenAuthority:
    """
    :class:`~token_authority.services._shared.ports.TokenAuthority` for
    components that hold the signing secret and can read the stores.

    The expected subject is the one carried by the token; ownership checks
    against a caller-supplied subject belong to
    :meth:`LocalTokenValidator.validate_access`.
    """

    def __init__(self, validator: LocalTokenValidator) -> None:
        self.validator = validator

    def is_token_valid(self, token: str) -> bool:
        try:
            subject = self.validator.signer.peek_subject(token)
            self.validator.check_access(token, subject)
        except TokenError as exc:
            log.info("token.local.rejected", extra={"reason": exc.reason})
            return False
        except Exception:
            log.exception("token.local.error")
            return False
        return True
