import logging

import pytest

from core import (
    DEFAULTS,
    ConfigurationError,
    DegenerateTrialError,
    DomainError,
    PopConfig,
    PopError,
    check_skeleton,
    load_config,
    resolve_cutoff,
    setup_logging,
)


def test_defaults_round_trip():
    cfg = PopConfig.from_dict({})
    assert cfg.target == DEFAULTS["target"]
    assert cfg.skeleton == DEFAULTS["skeleton"]
    assert cfg.sample_size == 30
    assert cfg.n_doses == 4
    assert cfg.validate() is cfg


def test_unknown_key_is_rejected():
    with pytest.raises(ConfigurationError):
        PopConfig.from_dict({"targt": 0.3})


@pytest.mark.parametrize(
    "titration,earlyterm,mode",
    [(True, True, "titration"), (True, False, "titration"), (False, True, "early"), (False, False, "plain")],
)
def test_mode(titration, earlyterm, mode):
    assert PopConfig(titration=titration, earlyterm=earlyterm).mode == mode


def test_load_config(tmp_path):
    path = tmp_path / "design.yaml"
    path.write_text(
        "target: 0.25\n"
        "n_cohort: 12\n"
        "skeleton: [0.05, 0.1, 0.25, 0.4]\n"
        "titration: false\n"
    )
    cfg = load_config(str(path), overrides={"seed": 7})
    assert cfg.target == 0.25
    assert cfg.n_cohort == 12
    assert cfg.cohortsize == DEFAULTS["cohortsize"]
    assert cfg.mode == "early"
    assert cfg.seed == 7


def test_load_config_validates(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("start: 9\n")
    with pytest.raises(ConfigurationError):
        load_config(str(path))


def test_load_config_needs_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(ConfigurationError):
        load_config(str(path))


def test_error_hierarchy():
    assert issubclass(DomainError, PopError) and issubclass(DomainError, ValueError)
    assert issubclass(ConfigurationError, PopError) and issubclass(ConfigurationError, ValueError)
    assert issubclass(DegenerateTrialError, PopError)


@pytest.mark.parametrize("skeleton", [[0.1, 0.05], [0.0, 0.2], [0.2, 1.0], [0.1, float("nan")]])
def test_bad_skeletons(skeleton):
    with pytest.raises(DomainError):
        check_skeleton(skeleton)


def test_empty_skeleton():
    with pytest.raises(ConfigurationError):
        check_skeleton([])


def test_resolve_cutoff():
    assert resolve_cutoff(2.5, 7) == 2.5
    assert resolve_cutoff(lambda n: n / 10, 7) == pytest.approx(0.7)
    with pytest.raises(DomainError):
        resolve_cutoff(lambda n: 0.0, 3)


def test_callable_cutoff_is_checked_for_every_n():
    cfg = PopConfig(cutoff=lambda n: 2.5 if n < 20 else -1.0)
    with pytest.raises(DomainError):
        cfg.validate()


def test_setup_logging_accepts_names(monkeypatch):
    calls = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.update(kw))
    setup_logging("debug")
    assert calls["level"] == logging.DEBUG
