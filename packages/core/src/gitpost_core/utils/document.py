import json

import yaml

from gitpost_core.errors import ParseError

JSON_EXTENSIONS = {".json"}


def document_format(file_name: str) -> str:
    """Return "json" for .json files and "yaml" for everything else."""
    lowered = file_name.lower()
    if any(lowered.endswith(ext) for ext in JSON_EXTENSIONS):
        return "json"
    return "yaml"


def parse_document(raw: str, file_name: str):
    """Parse decoded file content as YAML or JSON based on its extension.

    Raises ParseError for malformed content. Decoding failures are the
    caller's concern and never reach this function.
    """
    try:
        if document_format(file_name) == "json":
            return json.loads(raw)
        return yaml.safe_load(raw)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ParseError(f"Error whilst parsing {file_name}: {e}") from e


def serialize_fields(fields: dict, fmt: str = "yml") -> str:
    """Render submitted fields as the body of the committed entry file."""
    if fmt == "json":
        return json.dumps(fields, indent=2, ensure_ascii=False) + "\n"
    if fmt in ("yml", "yaml"):
        return yaml.safe_dump(fields, default_flow_style=False, sort_keys=False, allow_unicode=True)
    raise ValueError(f"Unknown entry format: {fmt!r}. Choose 'yml' or 'json'.")
