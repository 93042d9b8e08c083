import base64

import pytest

from fragment_api.exceptions import (
    InvalidSeedError, InvalidCookiesError, MissingCredentialError, ValidationError
)
from fragment_api.models import PayerCredentials, ProductKind, VerificationMode, get_flow
from fragment_api.services import CredentialEncoding, CredentialPreparer

from conftest import SEED_12, SEED_24, COOKIES


def _b64(value: str) -> str:
    return base64.b64encode(value.encode()).decode()


def _preparer(**kwargs) -> CredentialPreparer:
    options = dict(encoding=CredentialEncoding.BASE64, default_seed="", default_cookies="", default_auth_key="")
    options.update(kwargs)
    return CredentialPreparer(**options)


@pytest.mark.parametrize("words", [1, 11, 13, 18, 23, 25])
def test_seed_with_wrong_word_count_is_rejected(words):
    seed = " ".join(["word"] * words)
    with pytest.raises(ValidationError):
        _preparer().prepare_seed(seed)


@pytest.mark.parametrize("seed", [SEED_12, SEED_24, f"  {SEED_12}  "])
def test_seed_with_12_or_24_words_passes(seed):
    assert _preparer().prepare_seed(seed) == _b64(seed.strip())


def test_invalid_seed_is_a_validation_error():
    assert issubclass(InvalidSeedError, ValidationError)
    with pytest.raises(InvalidSeedError):
        _preparer().prepare_seed("too short")


@pytest.mark.parametrize("cookies", ["stel_dt=-180", "ssid=1", "stel_token=abc; stel_ssi=x"])
def test_cookies_without_session_marker_are_rejected(cookies):
    with pytest.raises(InvalidCookiesError):
        _preparer().prepare_cookies(cookies)


@pytest.mark.parametrize("cookies", [COOKIES, "stel_ssid=1", "foo=bar; stel_ssid=zzz"])
def test_cookies_with_session_marker_pass(cookies):
    assert _preparer().prepare_cookies(cookies) == _b64(cookies)


def test_raw_encoding_sends_values_verbatim():
    preparer = _preparer(encoding=CredentialEncoding.RAW)
    assert preparer.prepare_seed(SEED_12) == SEED_12
    assert preparer.prepare_cookies(COOKIES) == COOKIES


def test_defaults_are_used_when_nothing_is_passed():
    preparer = _preparer(default_seed=SEED_24, default_cookies=COOKIES)
    assert preparer.prepare_seed() == _b64(SEED_24)
    assert preparer.prepare_cookies("   ") == _b64(COOKIES)


def test_missing_credentials_raise():
    preparer = _preparer()
    with pytest.raises(MissingCredentialError):
        preparer.prepare_seed()
    with pytest.raises(MissingCredentialError):
        preparer.prepare_cookies(None)


def test_default_seed_is_validated_too():
    with pytest.raises(InvalidSeedError):
        _preparer(default_seed="one two three").prepare_seed()


class TestCredentialFields:

    def test_standard_create_uses_cookies(self):
        flow = get_flow(ProductKind.STARS)
        fields = _preparer(default_cookies=COOKIES).create_fields(flow, PayerCredentials())
        assert fields == {'fragment_cookies': _b64(COOKIES)}

    def test_without_kyc_create_sends_no_credentials(self):
        flow = get_flow(ProductKind.PREMIUM, VerificationMode.WITHOUT_KYC)
        assert _preparer().create_fields(flow, PayerCredentials()) == {}

    def test_auth_key_replaces_raw_secrets(self):
        flow = get_flow(ProductKind.TON)
        preparer = _preparer()
        credentials = PayerCredentials(auth_key="key-1")
        assert preparer.create_fields(flow, credentials) == {'auth_key': "key-1"}
        assert preparer.pay_fields(flow, credentials) == {'auth_key': "key-1"}

    def test_default_auth_key_is_used(self):
        flow = get_flow(ProductKind.STARS)
        preparer = _preparer(default_auth_key="default-key")
        assert preparer.pay_fields(flow, PayerCredentials()) == {'auth_key': "default-key"}

    def test_standard_pay_sends_seed_and_cookies(self):
        flow = get_flow(ProductKind.STARS)
        fields = _preparer().pay_fields(flow, PayerCredentials(seed=SEED_12, cookies=COOKIES))
        assert fields == {'seed': _b64(SEED_12), 'fragment_cookies': _b64(COOKIES)}

    def test_without_kyc_pay_sends_seed_only(self):
        flow = get_flow(ProductKind.STARS, VerificationMode.WITHOUT_KYC)
        fields = _preparer().pay_fields(flow, PayerCredentials(seed=SEED_12))
        assert fields == {'seed': _b64(SEED_12)}

    def test_credentials_repr_hides_secrets(self):
        text = repr(PayerCredentials(seed=SEED_12, cookies=COOKIES, auth_key="k"))
        assert "abandon" not in text
        assert "stel_ssid" not in text
