import importlib.util
import sys
from pathlib import Path


def load_module(script_path, module_name=None):
    """Import a python file by path and register it in ``sys.modules``."""
    script_path = Path(script_path)
    if module_name is None:
        module_name = script_path.stem
    spec = importlib.util.spec_from_file_location(module_name, str(script_path))
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)
    return module


def read_version() -> str:
    return (Path(__file__).parent.parent / "VERSION").read_text().strip()
