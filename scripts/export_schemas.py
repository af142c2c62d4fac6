"""Export JSON schemas for the export artifact and its parts."""

import json
from pathlib import Path

from kdoc_console.core.models import ExportedDocument, ExportedImage, ExportPayload


def main(schemas_dir: Path = Path("docs/schemas")) -> list[Path]:
    """Export schemas to docs/schemas/."""
    schemas_dir.mkdir(parents=True, exist_ok=True)

    written = []
    for model in (ExportPayload, ExportedDocument, ExportedImage):
        # by_alias keeps the wire names (schema, folderState, ...)
        schema = model.model_json_schema(by_alias=True)
        path = schemas_dir / f"{model.__name__}.schema.json"
        with open(path, "w") as f:
            json.dump(schema, f, indent=2)
        print(f"Exported {model.__name__} schema to {path}")
        written.append(path)
    return written


if __name__ == "__main__":
    main()
