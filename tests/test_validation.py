"""Tests for the validation pipeline and the publiccode.yml validator."""
import pytest
from publiccode_crawler.application.validation import ValidationPipeline, base_dir_for
from publiccode_crawler.domain.exceptions import ManifestValidationError
from publiccode_crawler.domain.validator_interface import IManifestValidator
from publiccode_crawler.infrastructure.metrics import REPOSITORY_FILE_SAVED_VALID, MetricsRegistry
from publiccode_crawler.infrastructure.publiccode_validator import PublicCodeValidator
from fakes import INVALID_MANIFEST, VALID_MANIFEST


class RecordingValidator(IManifestValidator):
    def __init__(self):
        self.base_dirs = []

    def parse(self, data, base_dir):
        self.base_dirs.append(base_dir)
        return {}


def test_base_dir_strips_file_name():
    url = "https://raw.githubusercontent.com/italia/medusa/main/publiccode.yml"
    assert base_dir_for(url, "publiccode.yml") == "https://raw.githubusercontent.com/italia/medusa/main/"
    assert base_dir_for("https://x/other.yml", "publiccode.yml") == "https://x/other.yml"


def test_base_dir_is_passed_per_call():
    validator = RecordingValidator()
    pipeline = ValidationPipeline(validator, "publiccode.yml", MetricsRegistry())

    pipeline.validate(b"", "https://a/one/publiccode.yml")
    pipeline.validate(b"", "https://b/two/publiccode.yml")

    assert validator.base_dirs == ["https://a/one/", "https://b/two/"]


def test_valid_manifest_increments_counter():
    metrics = MetricsRegistry()
    pipeline = ValidationPipeline(PublicCodeValidator(), "publiccode.yml", metrics)

    assert pipeline.validate(VALID_MANIFEST, "https://x/a/b/publiccode.yml") is None
    assert metrics.value(REPOSITORY_FILE_SAVED_VALID) == 1


def test_invalid_manifest_returns_error():
    metrics = MetricsRegistry()
    pipeline = ValidationPipeline(PublicCodeValidator(), "publiccode.yml", metrics)

    error = pipeline.validate(INVALID_MANIFEST, "https://x/a/b/publiccode.yml")

    assert isinstance(error, ManifestValidationError)
    assert "developmentStatus: invalid value 'finished'" in error.errors
    assert "legal.license: required" in error.errors
    assert metrics.value(REPOSITORY_FILE_SAVED_VALID) == 0


def test_validator_rejects_bad_yaml():
    with pytest.raises(ManifestValidationError):
        PublicCodeValidator().parse(b"name: [unclosed", "https://x/")


def test_validator_rejects_non_mapping():
    with pytest.raises(ManifestValidationError) as excinfo:
        PublicCodeValidator().parse(b"- just\n- a list\n", "https://x/")
    assert excinfo.value.errors == ["document is not a mapping"]


def test_relative_logo_against_local_base_dir(tmp_path):
    manifest = VALID_MANIFEST + b"logo: img/logo.svg\n"
    validator = PublicCodeValidator()

    with pytest.raises(ManifestValidationError) as excinfo:
        validator.parse(manifest, str(tmp_path))
    assert any("logo: file not found" in error for error in excinfo.value.errors)

    (tmp_path / "img").mkdir()
    (tmp_path / "img" / "logo.svg").write_text("<svg/>")
    assert validator.parse(manifest, str(tmp_path))["logo"] == "img/logo.svg"


def test_relative_logo_against_remote_base_dir():
    manifest = VALID_MANIFEST + b"logo: img/logo.svg\n"
    document = PublicCodeValidator().parse(manifest, "https://raw.example.org/a/b/main/")
    assert document["name"] == "Medusa"


def test_logo_with_unsupported_extension():
    manifest = VALID_MANIFEST + b"logo: img/logo.gif\n"
    with pytest.raises(ManifestValidationError) as excinfo:
        PublicCodeValidator().parse(manifest, "https://raw.example.org/a/b/main/")
    assert excinfo.value.errors == ["logo: unsupported image type: img/logo.gif"]


@pytest.mark.parametrize("key, snippet", [
    ("developmentStatus", b"developmentStatus: [stable]\n"),
    ("softwareType", b"softwareType: {kind: library}\n"),
    ("maintenance.type", b"maintenance: {type: [community]}\n"),
])
def test_non_string_choice_is_a_schema_error(key, snippet):
    with pytest.raises(ManifestValidationError) as excinfo:
        PublicCodeValidator().parse(snippet, "https://x/")
    assert f"{key}: must be a string" in excinfo.value.errors


def test_malformed_logo_reference_is_a_schema_error():
    manifest = VALID_MANIFEST + b"logo: 'http://[abc/logo.png'\n"
    with pytest.raises(ManifestValidationError) as excinfo:
        PublicCodeValidator().parse(manifest, "https://raw.example.org/a/b/main/")
    assert excinfo.value.errors == ["logo: malformed reference: http://[abc/logo.png"]


def test_list_typed_field_is_counted_not_valid():
    metrics = MetricsRegistry()
    pipeline = ValidationPipeline(PublicCodeValidator(), "publiccode.yml", metrics)

    error = pipeline.validate(b"developmentStatus: [stable]\n", "https://x/a/b/publiccode.yml")

    assert isinstance(error, ManifestValidationError)
    assert metrics.value(REPOSITORY_FILE_SAVED_VALID) == 0
