"""Token primitives (signer, issuer, validator) and the auth service."""
