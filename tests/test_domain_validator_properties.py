"""
Property-based tests for the domain validator.

Uses Hypothesis to check normalization, apex detection, blocklist matching
and the DNS length and character limits.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from custom_domains.config import DEFAULT_BLOCKED_DOMAINS
from custom_domains.domain_validator import DomainValidator, normalize_hostname
from custom_domains.enums import ValidationErrorCode


# TLDs without ICANN second-level entries, so label + tld is always registrable
SIMPLE_TLDS = ["com", "net", "org"]


@st.composite
def label_strategy(draw, max_size: int = 20) -> str:
    """Generate a valid lowercase DNS label."""
    return draw(st.text(
        alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz0123456789"),
        min_size=1,
        max_size=max_size,
    ))


@st.composite
def apex_domain_strategy(draw) -> str:
    """Generate a registrable apex domain such as 'shop42.com'."""
    return f"{draw(label_strategy())}.{draw(st.sampled_from(SIMPLE_TLDS))}"


class TestApexDetectionProperty:
    """Apex domains are exactly the registrable domains without subdomain labels."""

    @given(domain=apex_domain_strategy())
    @settings(max_examples=100)
    def test_apex_and_www_variant(self, domain: str) -> None:
        validator = DomainValidator()

        apex = validator.validate(domain)
        www = validator.validate(f"www.{domain}")

        assert apex.valid
        assert apex.is_apex is True
        assert www.valid
        assert www.is_apex is False

    @given(sub=label_strategy(), domain=apex_domain_strategy())
    @settings(max_examples=50)
    def test_subdomain_is_not_apex(self, sub: str, domain: str) -> None:
        result = DomainValidator().validate(f"{sub}.{domain}")

        assert result.valid
        assert result.is_apex is False
        assert result.hostname == f"{sub}.{domain}"

    def test_multi_part_suffix_apex(self) -> None:
        validator = DomainValidator()

        assert validator.validate("example.co.uk").is_apex is True
        assert validator.validate("shop.example.co.uk").is_apex is False
        assert validator.is_apex_domain("example.co.uk")
        assert not validator.is_apex_domain("www.example.co.uk")


class TestNormalizationProperty:
    """Normalization yields a canonical lowercase hostname."""

    def test_mixed_case_is_lowercased(self) -> None:
        result = DomainValidator().validate("MyDomain.COM")

        assert result.valid
        assert result.hostname == "mydomain.com"

    @given(domain=apex_domain_strategy())
    @settings(max_examples=50)
    def test_scheme_path_port_and_trailing_dot_are_stripped(self, domain: str) -> None:
        validator = DomainValidator()

        for raw in (
            f"https://{domain}",
            f"http://{domain}/some/path",
            f"  {domain.upper()}.  ",
            f"{domain}.",
            f"{domain}:8080",
            f"https://{domain.upper()}:443/path",
        ):
            result = validator.validate(raw)
            assert result.valid, raw
            assert result.hostname == domain

    @given(raw=st.text(
        alphabet=st.sampled_from("abcXYZ019.-"),
        max_size=60,
    ))
    @settings(max_examples=100)
    def test_normalize_is_idempotent(self, raw: str) -> None:
        once = normalize_hostname(raw)
        assert normalize_hostname(once) == once

    def test_international_domain_becomes_a_label(self) -> None:
        result = DomainValidator().validate("Bücher.de")

        assert result.valid
        assert result.hostname == "xn--bcher-kva.de"
        assert result.is_apex is True


class TestBlocklistProperty:
    """Platform-owned suffixes are rejected, exact or as any subdomain."""

    @given(
        sub=label_strategy(),
        blocked=st.sampled_from([d for d in DEFAULT_BLOCKED_DOMAINS if "." in d]),
    )
    @settings(max_examples=100)
    def test_blocked_suffix_is_rejected_and_named(self, sub: str, blocked: str) -> None:
        result = DomainValidator().validate(f"{sub}.{blocked}")

        assert not result.valid
        assert result.code == ValidationErrorCode.BLOCKED_DOMAIN
        assert blocked in result.error
        assert result.error == f"{blocked} domains are not allowed"

    def test_exact_blocked_domain_is_rejected(self) -> None:
        result = DomainValidator().validate("netlify.app")

        assert not result.valid
        assert result.code == ValidationErrorCode.BLOCKED_DOMAIN

    def test_lookalike_is_not_blocked(self) -> None:
        result = DomainValidator().validate("mynetlify.app")

        assert result.valid

    def test_custom_blocklist(self) -> None:
        validator = DomainValidator(blocked_domains=["Example.COM "])

        assert validator.blocked_domains == ["example.com"]
        assert not validator.validate("shop.example.com").valid
        assert validator.validate("shop.netlify.app").valid


class TestRejectionProperty:
    """Malformed input is rejected with a specific code and message."""

    def test_empty_input(self) -> None:
        validator = DomainValidator()

        for raw in ("", "   ", "https://"):
            result = validator.validate(raw)
            assert not result.valid
            assert result.code == ValidationErrorCode.EMPTY_INPUT
            assert result.error == "Domain is required"

    def test_no_public_suffix(self) -> None:
        validator = DomainValidator()

        for raw in ("localhost", "com", "intranet", "192.168.0.1"):
            result = validator.validate(raw)
            assert not result.valid, raw
            assert result.code == ValidationErrorCode.INVALID_DOMAIN
            assert result.error == "Invalid domain name"

    def test_label_too_long(self) -> None:
        result = DomainValidator().validate("a" * 64 + ".com")

        assert not result.valid
        assert result.code == ValidationErrorCode.LABEL_TOO_LONG
        assert result.error == "Domain label exceeds 63 characters"

    def test_label_of_63_is_accepted(self) -> None:
        assert DomainValidator().validate("a" * 63 + ".com").valid

    def test_hostname_too_long(self) -> None:
        hostname = ".".join(["a" * 63] * 4) + ".com"
        result = DomainValidator().validate(hostname)

        assert not result.valid
        assert result.code == ValidationErrorCode.TOO_LONG
        assert result.error == "Domain name is too long"

    @given(
        head=label_strategy(max_size=10),
        bad=st.sampled_from(["_", "!", "*", "$", "'"]),
        tail=label_strategy(max_size=10),
        tld=st.sampled_from(SIMPLE_TLDS),
    )
    @settings(max_examples=100)
    def test_forbidden_characters(self, head: str, bad: str, tail: str, tld: str) -> None:
        result = DomainValidator().validate(f"{head}{bad}{tail}.{tld}")

        assert not result.valid
        assert result.code == ValidationErrorCode.INVALID_CHARACTERS
        assert result.error == "Domain contains invalid characters"

    def test_non_numeric_port_is_rejected(self) -> None:
        result = DomainValidator().validate("example.com:abc")

        assert not result.valid

    def test_hyphen_at_label_edge(self) -> None:
        validator = DomainValidator()

        assert not validator.validate("-shop.com").valid
        assert not validator.validate("shop-.com").valid
        assert validator.validate("my-shop.com").valid
