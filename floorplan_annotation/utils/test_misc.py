import sys

from floorplan_annotation.utils.misc import load_module, read_version


def test_load_module(tmp_path):
    script = tmp_path / "sample_command.py"
    script.write_text("VALUE = 42\n")
    module = load_module(script, module_name="fpa_test_sample_command")
    assert module.VALUE == 42
    assert sys.modules["fpa_test_sample_command"] is module


def test_read_version():
    version = read_version()
    assert version
    assert version.count(".") == 2
