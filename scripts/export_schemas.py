"""Export JSON schemas for the stored document models."""

import json
from pathlib import Path

from tripsync.app.models import Booking, Journey, PackingList, Trip

MODELS = {
    "Trip": Trip,
    "Journey": Journey,
    "Booking": Booking,
    "PackingList": PackingList,
}


def main() -> None:
    """Export schemas to docs/schemas/."""
    schemas_dir = Path("docs/schemas")
    schemas_dir.mkdir(parents=True, exist_ok=True)

    for name, model in MODELS.items():
        schema_path = schemas_dir / f"{name}.schema.json"
        with open(schema_path, "w") as f:
            json.dump(model.model_json_schema(), f, indent=2)
        print(f"Exported {name} schema to {schema_path}")


if __name__ == "__main__":
    main()
