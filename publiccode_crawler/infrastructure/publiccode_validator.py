"""publiccode.yml parser and schema checks."""
import logging
from pathlib import Path
from typing import Any, Dict, List
from urllib.parse import urljoin, urlsplit
import yaml
from publiccode_crawler.domain.exceptions import ManifestValidationError
from publiccode_crawler.domain.validator_interface import IManifestValidator


logger = logging.getLogger(__name__)

REQUIRED_KEYS = (
    "publiccodeYmlVersion",
    "name",
    "url",
    "platforms",
    "developmentStatus",
    "softwareType",
    "description",
    "legal.license",
    "maintenance.type",
    "localisation.localisationReady",
    "localisation.availableLanguages",
)

DEVELOPMENT_STATUSES = {"concept", "development", "beta", "stable", "obsolete"}

SOFTWARE_TYPES = {
    "standalone/mobile",
    "standalone/iot",
    "standalone/desktop",
    "standalone/web",
    "standalone/backend",
    "standalone/other",
    "addon",
    "library",
    "configurationFiles",
}

MAINTENANCE_TYPES = {"internal", "contract", "community", "none"}

IMAGE_EXTENSIONS = {".svg", ".png", ".jpg", ".jpeg"}


def _lookup(document: Dict[str, Any], dotted_key: str) -> Any:
    value: Any = document
    for part in dotted_key.split("."):
        if not isinstance(value, dict) or part not in value:
            return None
        value = value[part]
    return value


def _is_remote(location: str) -> bool:
    try:
        return urlsplit(location).scheme in ("http", "https")
    except ValueError:
        return False


class PublicCodeValidator(IManifestValidator):
    """Validates publiccode.yml documents.

    Relative image references (logo, screenshots) are resolved against the
    base_dir passed to each parse() call. When base_dir is a local directory
    the referenced files must exist; remote references are only checked for
    their extension.
    """

    def parse(self, data: bytes, base_dir: str) -> Dict[str, Any]:
        """Parse and validate a manifest.

        Args:
            data: Raw YAML bytes
            base_dir: URL or directory the manifest was read from

        Returns:
            The parsed document

        Raises:
            ManifestValidationError: With every problem found
        """
        try:
            document = yaml.safe_load(data)
        except yaml.YAMLError as e:
            raise ManifestValidationError([f"invalid YAML: {e}"])

        if not isinstance(document, dict):
            raise ManifestValidationError(["document is not a mapping"])

        errors: List[str] = []
        for key in REQUIRED_KEYS:
            if _lookup(document, key) in (None, "", [], {}):
                errors.append(f"{key}: required")

        self._check_choice(document, "developmentStatus", DEVELOPMENT_STATUSES, errors)
        self._check_choice(document, "softwareType", SOFTWARE_TYPES, errors)
        self._check_choice(document, "maintenance.type", MAINTENANCE_TYPES, errors)

        url = document.get("url")
        if isinstance(url, str) and url and not _is_remote(url):
            errors.append(f"url: not an http(s) URL: {url}")

        description = document.get("description")
        if description is not None and not isinstance(description, dict):
            errors.append("description: must be a mapping of language codes")

        references = []
        if document.get("logo"):
            references.append(("logo", document["logo"]))
        if isinstance(description, dict):
            for lang, localised in description.items():
                if isinstance(localised, dict):
                    screenshots = localised.get("screenshots") or []
                    if not isinstance(screenshots, list):
                        screenshots = [screenshots]
                    for shot in screenshots:
                        references.append((f"description.{lang}.screenshots", shot))

        for key, reference in references:
            errors.extend(self._check_reference(key, reference, base_dir))

        if errors:
            raise ManifestValidationError(errors)

        return document

    @staticmethod
    def _check_choice(document: Dict[str, Any], key: str, allowed: set, errors: List[str]) -> None:
        value = _lookup(document, key)
        if value in (None, ""):
            return
        if not isinstance(value, str):
            errors.append(f"{key}: must be a string")
        elif value not in allowed:
            errors.append(f"{key}: invalid value {value!r}")

    @staticmethod
    def _check_reference(key: str, reference: Any, base_dir: str) -> List[str]:
        if not isinstance(reference, str):
            return [f"{key}: must be a string"]

        try:
            reference_path = urlsplit(reference).path
        except ValueError:
            return [f"{key}: malformed reference: {reference}"]

        if Path(reference_path).suffix.lower() not in IMAGE_EXTENSIONS:
            return [f"{key}: unsupported image type: {reference}"]

        if _is_remote(reference):
            return []

        if _is_remote(base_dir):
            resolved = urljoin(base_dir, reference)
            logger.debug(f"{key}: {reference} resolves to {resolved}")
            return []

        resolved_path = Path(base_dir) / reference
        if not resolved_path.is_file():
            return [f"{key}: file not found: {resolved_path}"]
        return []
