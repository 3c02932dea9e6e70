# models.py (Django 5.x) - API access tokens
#
# Raw tokens are shown once when issued. Only the SHA-256 hash is stored.

from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import timedelta

from django.conf import settings
from django.db import models
from django.utils import timezone


logger = logging.getLogger(__name__)


class ApiToken(models.Model):
    """Bearer token for the REST API."""
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="api_tokens")
    label = models.CharField(max_length=80)
    token_hash = models.CharField(max_length=64, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    revoked_at = models.DateTimeField(null=True, blank=True)
    last_used_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.user} - {self.label}"

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    @property
    def is_expired(self) -> bool:
        return self.expires_at is not None and timezone.now() >= self.expires_at

    def is_active(self) -> bool:
        return not self.is_revoked and not self.is_expired

    @staticmethod
    def _hash(raw_token: str) -> str:
        return hashlib.sha256(raw_token.encode()).hexdigest()

    @classmethod
    def issue(cls, *, user, label: str, ttl_hours: int | None = None) -> tuple["ApiToken", str]:
        """Create a token and return it with the raw value, which is not stored."""
        if ttl_hours is None:
            ttl_hours = settings.BASTION_TOKEN_TTL_HOURS
        raw = secrets.token_urlsafe(32)
        expires_at = timezone.now() + timedelta(hours=ttl_hours) if ttl_hours else None
        obj = cls.objects.create(user=user, label=label, token_hash=cls._hash(raw), expires_at=expires_at)
        logger.info("Issued API token %r for %s", label, user)
        return obj, raw

    @classmethod
    def authenticate_raw_token(cls, raw_token: str) -> "ApiToken | None":
        tok = cls.objects.filter(token_hash=cls._hash(raw_token)).select_related("user").first()
        if not tok or not tok.is_active():
            return None
        tok.last_used_at = timezone.now()
        tok.save(update_fields=["last_used_at"])
        return tok

    def revoke(self) -> None:
        if self.is_revoked:
            return
        self.revoked_at = timezone.now()
        self.save(update_fields=["revoked_at"])
        logger.info("Revoked API token %r for %s", self.label, self.user)
