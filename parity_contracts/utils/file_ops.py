import json
from json import JSONDecodeError
from pathlib import Path
from typing import Any, Dict, Optional


def load_json_from_path(f: Path) -> Optional[Dict[str, Any]]:
    try:
        with f.open() as json_file:
            return json.load(json_file)
    except FileNotFoundError:
        return None
    except (JSONDecodeError, UnicodeDecodeError) as ex:
        raise ValueError(f"JSON file {f} is corrupted: {ex}") from ex


def store_json_to_path(f: Path, content: Dict[str, Any]) -> None:
    with f.open(mode="w") as json_file:
        json.dump(content, json_file, indent=2, sort_keys=True)
        json_file.write("\n")
