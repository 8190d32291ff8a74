from importlib import resources
from typing import List

_EXAMPLES_DIR = "data/examples"


def list_examples() -> List[str]:
    folder = resources.files(__package__).joinpath(_EXAMPLES_DIR)
    return sorted(entry.name[: -len(".puml")] for entry in folder.iterdir() if entry.name.endswith(".puml"))


def load_example(name: str) -> str:
    if name not in list_examples():
        raise KeyError(name)
    with resources.files(__package__).joinpath(f"{_EXAMPLES_DIR}/{name}.puml").open("r", encoding="utf-8") as fh:
        return fh.read()
