import json
import typing as t
from pathlib import Path


def write_jsonl_file(file_path: str | Path, data: t.Iterable[dict[str, t.Any]]) -> None:
    """Write a list of JSON-serializable objects to a JSONL file

    Args:
        file_path (str | Path): The path to the file to write
        data (Iterable[dict]): The objects to write, one per line
    """
    with open(file_path, "w", encoding="utf-8") as f:
        for sample in data:
            f.write(json.dumps(sample, ensure_ascii=False) + "\n")


def read_jsonl_file(file_path: str | Path) -> list[dict]:
    """Read a JSONL file and return the list of decoded JSON objects

    Args:
        file_path (str | Path): The path to the file to read
    """
    with open(file_path, "r", encoding="utf-8") as f:
        return [json.loads(line) for line in f.readlines() if line.strip()]
