"""Tests for token pair issuance."""

from datetime import timedelta

import jwt
import pytest

from cosmos.core.settings import AuthSettings
from cosmos.crypto.keyring import KeyRing
from cosmos.tokens.claims import Claims, Principal
from cosmos.tokens.issuer import TokenIssuer
from tests.support import AUDIENCE, FakeClock

PRINCIPAL = Principal(
    id=7,
    email="a@b.com",
    name="Ada",
    role="Admin",
    permissions=["games:read", "users:read"],
)


class TestAccessToken:
    """Tests for access claim construction."""

    def test_window(self, issuer: TokenIssuer, clock: FakeClock) -> None:
        access = issuer.create_access_token(PRINCIPAL)

        assert access.iat == clock.now
        assert access.nbf == clock.now
        assert access.exp == clock.now + timedelta(hours=1)
        assert access.aud == [AUDIENCE]
        assert access.sub == "7"
        assert access.jti

    def test_fractional_seconds_truncated(
        self, issuer: TokenIssuer, clock: FakeClock
    ) -> None:
        issued_at = clock.now
        clock.advance(timedelta(microseconds=750_000))
        access = issuer.create_access_token(PRINCIPAL)
        assert access.iat == issued_at

    def test_identity_carried(self, issuer: TokenIssuer) -> None:
        access = issuer.create_access_token(PRINCIPAL)
        assert access.email == "a@b.com"
        assert access.name == "Ada"
        assert access.role == "Admin"
        assert access.permissions == ["games:read", "users:read"]

    def test_fresh_jti_each_time(self, issuer: TokenIssuer) -> None:
        first = issuer.create_access_token(PRINCIPAL)
        second = issuer.create_access_token(PRINCIPAL)
        assert first.jti != second.jti

    def test_reissue_from_claims(self, issuer: TokenIssuer, clock: FakeClock) -> None:
        old = issuer.create_access_token(PRINCIPAL)
        clock.advance(timedelta(minutes=50))
        new = issuer.create_access_token(old)

        assert new.sub == old.sub
        assert new.permissions == old.permissions
        assert new.jti != old.jti
        assert new.iat == old.iat + timedelta(minutes=50)

    def test_issuer_claim(self, keyring: KeyRing, clock: FakeClock) -> None:
        settings = AuthSettings(audience=AUDIENCE, issuer="https://auth.cosmos.test")
        issuer = TokenIssuer(keyring, settings.token_settings(), clock=clock)
        assert issuer.create_access_token(PRINCIPAL).iss == "https://auth.cosmos.test"


class TestRefreshToken:
    """Tests for the access/refresh timing relationship."""

    def test_pair_shares_identity(self, issuer: TokenIssuer) -> None:
        access = issuer.create_access_token(PRINCIPAL)
        refresh = issuer.create_refresh_token(access)

        assert refresh.jti == access.jti
        assert refresh.sub == access.sub
        assert refresh.iat == access.iat
        assert refresh.aud == access.aud

    def test_timing(self, issuer: TokenIssuer, clock: FakeClock) -> None:
        access = issuer.create_access_token(PRINCIPAL)
        refresh = issuer.create_refresh_token(access)

        assert refresh.nbf == clock.now + timedelta(minutes=45)
        assert access.exp - refresh.nbf == timedelta(minutes=15)
        assert refresh.exp - access.exp == timedelta(hours=1)
        assert refresh.exp == access.iat + timedelta(hours=2)

    def test_only_refresh_is_marked(self, issuer: TokenIssuer) -> None:
        access = issuer.create_access_token(PRINCIPAL)
        assert not access.is_refresh
        assert issuer.create_refresh_token(access).is_refresh

    def test_no_identity_claims(self, issuer: TokenIssuer) -> None:
        refresh = issuer.create_refresh_token(issuer.create_access_token(PRINCIPAL))
        assert refresh.email is None
        assert refresh.permissions == []

    def test_requires_issued_access(self, issuer: TokenIssuer) -> None:
        with pytest.raises(ValueError, match="issued"):
            issuer.create_refresh_token(Claims(sub="7"))


class TestSigning:
    """Tests for signed token output."""

    def test_kid_header(self, issuer: TokenIssuer, keyring: KeyRing) -> None:
        pair = issuer.create_tokens(PRINCIPAL)
        for token in (pair.access_token, pair.refresh_token):
            header = jwt.get_unverified_header(token)
            assert header["kid"] == keyring.current_key_id
            assert header["alg"] == "RS256"

    def test_payload_uses_epoch_seconds(
        self, issuer: TokenIssuer, clock: FakeClock
    ) -> None:
        token = issuer.sign(issuer.create_access_token(PRINCIPAL))
        payload = jwt.decode(token, options={"verify_signature": False})
        assert payload["iat"] == int(clock.now.timestamp())
        assert payload["exp"] == int(clock.now.timestamp()) + 3600
        assert payload["aud"] == [AUDIENCE]

    def test_signed_by_current_key(self, issuer: TokenIssuer, keyring: KeyRing) -> None:
        token = issuer.sign(issuer.create_access_token(PRINCIPAL))
        public_key = keyring.verification_key(keyring.current_key_id)
        payload = jwt.decode(
            token,
            public_key,
            algorithms=["RS256"],
            audience=AUDIENCE,
        )
        assert payload["sub"] == "7"
