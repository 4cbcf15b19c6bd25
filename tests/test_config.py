"""
Tests for settings, errors and the report model.
"""

import pytest
from pydantic import ValidationError

from simio.core.config import Settings, get_settings
from simio.core.models import PipelineReport, RunMode
from simio.errors import (
    BrokerConnectError,
    FileWriteError,
    IOFault,
    RetryExhaustedError,
    VerificationError,
)
from simio.faults import FILE_FAULT_KINDS, FaultKind


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self):
        """Test defaults match the pipeline constants."""
        settings = Settings(_env_file=None)

        assert settings.topic == "dummy_topic"
        assert settings.kv_url == "redis://127.0.0.1"
        assert settings.output_path == "output.txt"
        assert settings.max_retries == 5
        assert settings.base_delay_ms == 10
        assert settings.verify_every == 5
        assert settings.verify_entries == 5
        assert settings.fault_probability == 0.1

    def test_prefixed_env(self, monkeypatch):
        """Test SIMIO_ variables override defaults."""
        monkeypatch.setenv("SIMIO_TOPIC", "events")
        monkeypatch.setenv("SIMIO_MAX_RETRIES", "2")

        settings = Settings(_env_file=None)

        assert settings.topic == "events"
        assert settings.max_retries == 2

    def test_seed_from_bare_env(self, monkeypatch):
        """Test the seed comes from SEED, without the prefix."""
        monkeypatch.setenv("SEED", "12345")

        assert Settings(_env_file=None).seed == 12345

    def test_seed_out_of_range(self, monkeypatch):
        """Test seeds must be unsigned 64-bit."""
        monkeypatch.setenv("SEED", "-1")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_probability_out_of_range(self):
        """Test fault probabilities outside [0, 1] are rejected."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, fault_probability=1.5)

    def test_env_file(self, tmp_path, monkeypatch):
        """Test values are read from a .env file."""
        env_file = tmp_path / ".env"
        env_file.write_text("SIMIO_OUTPUT_PATH=/tmp/elsewhere.txt\n")
        monkeypatch.delenv("SIMIO_OUTPUT_PATH", raising=False)

        assert Settings(_env_file=env_file).output_path == "/tmp/elsewhere.txt"

    def test_get_settings_cached(self):
        """Test get_settings() returns one instance."""
        assert get_settings() is get_settings()


class TestErrors:
    """Tests for the error hierarchy."""

    def test_default_messages(self):
        """Test each fault carries its kind and a default message."""
        error = BrokerConnectError()

        assert isinstance(error, IOFault)
        assert error.kind == FaultKind.BROKER_CONNECT
        assert str(error) == "Kafka connection error"

    def test_kind_override(self):
        """Test a write error can report the size cap instead."""
        error = FileWriteError("too big", kind=FaultKind.FILE_SIZE_EXCEEDED)

        assert error.kind == FaultKind.FILE_SIZE_EXCEEDED
        assert FileWriteError().kind == FaultKind.FILE_WRITE

    def test_base_fault_requires_kind(self):
        """Test a bare IOFault must say which fault it is."""
        with pytest.raises(TypeError):
            IOFault("unclassified")

        assert IOFault("classified", kind=FaultKind.KV_READ).kind == FaultKind.KV_READ

    def test_retry_exhausted_message(self):
        """Test the death reason names the operation and attempts."""
        error = RetryExhaustedError("read_message", 6, BrokerConnectError("down"))

        assert str(error) == "read_message failed after 6 attempts: down"

    def test_verification_message(self):
        """Test the mismatch message shows both sides."""
        error = VerificationError(["a"], ["b"])

        assert str(error) == "Data verification failed! Expected ['a'], got ['b']"


class TestFaultKind:
    """Tests for the fault taxonomy."""

    def test_file_faults(self):
        """Test which kinds belong to an open file."""
        assert FaultKind.FILE_WRITE.is_file_fault
        assert not FaultKind.FILE_OPEN.is_file_fault
        assert not FaultKind.BROKER_READ.is_file_fault
        assert len(FILE_FAULT_KINDS) == 4

    def test_every_kind_described(self):
        """Test every kind has a description."""
        for kind in FaultKind:
            assert kind.describe()


class TestPipelineReport:
    """Tests for the run summary model."""

    def test_succeeded(self):
        """Test a report without a death reason succeeded."""
        assert PipelineReport(mode=RunMode.REAL).succeeded
        assert not PipelineReport(mode=RunMode.REAL, death_reason="boom").succeeded

    def test_serializes(self):
        """Test the report dumps to JSON-friendly data."""
        report = PipelineReport(mode=RunMode.SIMULATED, seed=42, fault_counts={"kv_read": 1})

        data = report.model_dump(mode="json")

        assert data["mode"] == "simulated"
        assert data["seed"] == 42
        assert data["fault_counts"] == {"kv_read": 1}
