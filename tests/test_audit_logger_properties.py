"""
Property-based tests for the audit logger.

Covers output formats, level filtering, masking of credentials and
audit-mode signatures.
"""

import json
from io import StringIO

from hypothesis import assume, given, settings
from hypothesis import strategies as st

from custom_domains.audit_logger import AuditLogger, LogEntry
from custom_domains.config import LoggingConfig
from custom_domains.enums import LogLevel


SENSITIVE_KEYS = ["token", "hmac_secret", "authorization", "api_key", "signing_key"]


@st.composite
def component_name_strategy(draw) -> str:
    return draw(st.text(
        alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"),
        min_size=1,
        max_size=30,
    ))


@st.composite
def message_strategy(draw) -> str:
    message = draw(st.text(
        alphabet=st.characters(
            whitelist_categories=("L", "N", "P", "S", "Zs"),
            blacklist_characters="\x00\n\r",
        ),
        min_size=1,
        max_size=120,
    ))
    assume("bearer" not in message.lower())
    return message


@st.composite
def signing_key_strategy(draw) -> str:
    return draw(st.text(
        alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"),
        min_size=16,
        max_size=64,
    ))


class TestOutputFormats:

    @given(
        level=st.sampled_from(list(LogLevel)),
        component=component_name_strategy(),
        message=message_strategy(),
    )
    @settings(max_examples=100)
    def test_both_format_writes_json_then_text(self, level: LogLevel, component: str, message: str) -> None:
        output = StringIO()
        logger = AuditLogger(output_format="both", output_stream=output, min_level=LogLevel.DEBUG)

        logger.log(level, component, message, {"domain": "acme.com"})

        lines = output.getvalue().strip().split("\n")
        assert len(lines) == 2
        parsed = json.loads(lines[0])
        assert parsed["level"] == level.value
        assert parsed["component"] == component
        assert parsed["message"] == message
        assert parsed["data"] == {"domain": "acme.com"}
        assert level.value.upper() in lines[1]
        assert f"[{component}]" in lines[1]

    def test_invalid_format_is_rejected(self) -> None:
        try:
            AuditLogger(output_format="xml")
            assert False, "Expected ValueError"
        except ValueError:
            pass


class TestLevelFiltering:

    @given(
        min_level=st.sampled_from(list(LogLevel)),
        level=st.sampled_from(list(LogLevel)),
    )
    @settings(max_examples=50)
    def test_entries_below_threshold_are_dropped(self, min_level: LogLevel, level: LogLevel) -> None:
        order = list(LogLevel)
        output = StringIO()
        logger = AuditLogger(output_format="json", output_stream=output, min_level=min_level)

        entry = logger.log(level, "Resolver", "lookup")

        if order.index(level) >= order.index(min_level):
            assert entry is not None
            assert logger.entries == [entry]
        else:
            assert entry is None
            assert output.getvalue() == ""
            assert logger.entries == []

    def test_from_config(self) -> None:
        output = StringIO()
        logger = AuditLogger.from_config(
            LoggingConfig(level="warn", output_format="json", audit_mode=True, audit_signing_key="k" * 16),
            output_stream=output,
        )

        logger.info("Service", "hidden")
        logger.warn("Service", "shown")

        assert [e.message for e in logger.entries] == ["shown"]
        assert logger.audit_mode

    def test_unknown_level_falls_back_to_info(self) -> None:
        logger = AuditLogger.from_config(LoggingConfig(level="chatty"), output_stream=StringIO())

        assert not logger.is_enabled_for(LogLevel.DEBUG)
        assert logger.is_enabled_for(LogLevel.INFO)

    def test_buffer_is_bounded(self) -> None:
        logger = AuditLogger(output_stream=StringIO(), max_entries=3)

        for i in range(5):
            logger.info("Service", f"entry {i}")

        assert [e.message for e in logger.entries] == ["entry 2", "entry 3", "entry 4"]
        logger.clear_entries()
        assert logger.entries == []


class TestAuditSignatures:

    @given(
        component=component_name_strategy(),
        message=message_strategy(),
        signing_key=signing_key_strategy(),
    )
    @settings(max_examples=100)
    def test_signed_entries_verify_and_detect_tampering(
        self,
        component: str,
        message: str,
        signing_key: str,
    ) -> None:
        logger = AuditLogger(output_format="json", output_stream=StringIO())
        logger.enable_audit_mode(signing_key)

        entry = logger.log(LogLevel.INFO, component, message, {"domain": "acme.com", "state": "verified"})

        assert entry.signature
        assert logger.verify_signature(entry)

        tampered = LogEntry(
            timestamp=entry.timestamp,
            level=entry.level,
            component=entry.component,
            message=entry.message,
            data={"domain": "evil.com", "state": "verified"},
            signature=entry.signature,
        )
        assert not logger.verify_signature(tampered)

    def test_no_signature_without_audit_mode(self) -> None:
        logger = AuditLogger(output_format="json", output_stream=StringIO())

        entry = logger.log(LogLevel.ERROR, "Registrar", "failed")

        assert entry.signature is None
        assert not logger.verify_signature(entry)

    def test_empty_signing_key_is_rejected(self) -> None:
        logger = AuditLogger(output_stream=StringIO())
        try:
            logger.enable_audit_mode("")
            assert False, "Expected ValueError"
        except ValueError:
            pass


class TestMasking:

    @given(
        key=st.sampled_from(SENSITIVE_KEYS),
        prefix=st.sampled_from(["", "registrar_", "redis_"]),
        value=st.text(alphabet=st.sampled_from("QWXYZ"), min_size=5, max_size=20),
    )
    @settings(max_examples=100)
    def test_sensitive_keys_are_masked(self, key: str, prefix: str, value: str) -> None:
        output = StringIO()
        logger = AuditLogger(output_format="json", output_stream=output)

        entry = logger.log(LogLevel.INFO, "Config", "loaded", {
            f"{prefix}{key}": value,
            "nested": {key: value, "domain": "acme.com"},
        })

        assert entry.data[f"{prefix}{key}"] == AuditLogger.MASK_VALUE
        assert entry.data["nested"][key] == AuditLogger.MASK_VALUE
        assert entry.data["nested"]["domain"] == "acme.com"
        assert value not in output.getvalue()

    def test_bearer_tokens_are_masked(self) -> None:
        output = StringIO()
        logger = AuditLogger(output_format="text", output_stream=output)

        entry = logger.log(LogLevel.ERROR, "Registrar", "Request with Bearer abc.DEF-123 failed", {
            "headers": ["Bearer abc.DEF-123"],
        })

        assert "abc.DEF-123" not in entry.message
        assert "abc.DEF-123" not in output.getvalue()
        assert entry.data["headers"] == ["Bearer " + AuditLogger.MASK_VALUE]

    def test_plain_data_is_untouched(self) -> None:
        logger = AuditLogger(output_stream=StringIO())

        data = {"domain": "acme.com", "http_status_code": 404, "is_apex": True}
        entry = logger.log(LogLevel.INFO, "Registrar", "removed", data)

        assert entry.data == data
