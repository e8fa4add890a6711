import yaml

from vmdrec.core import Config


def test_from_dict_merges_defaults():
    config = Config.from_dict({"retarget": {"grounding": {"foot_radius": 0.1}}})

    assert config.get("retarget.grounding.foot_radius") == 0.1
    assert config.get("retarget.grounding.large_damping") == 0.5
    assert config.get("sampler.bone_amplifier") == 12.5


def test_from_dict_is_not_shared():
    first = Config.from_dict({})
    second = Config.from_dict({})
    first.set("recorder.fps", 60)
    assert second.get("recorder.fps") == 30


def test_get_missing_key_returns_default():
    config = Config.from_dict({})
    assert config.get("recorder.nope", 7) == 7
    assert config.get("export.model_name.deeper") is None


def test_save_and_reload(tmp_path):
    config = Config.from_dict({"export": {"model_name": "ミク"}})
    path = tmp_path / "config.yaml"
    config.save(str(path))

    with open(path, "r", encoding="utf-8") as f:
        loaded = Config.from_dict(yaml.safe_load(f))
    assert loaded.get("export.model_name") == "ミク"
