from pathlib import Path

from gridsim.config import FullConfig, Precip, Roof, load_config, make_rng

DEFAULT_YAML = Path(__file__).resolve().parents[1] / "configs" / "default.yaml"


def test_defaults():
    cfg = FullConfig()
    assert cfg.seed == 42
    assert cfg.knobs.pass_early == 55 and cfg.knobs.variance == 30
    assert cfg.environment.precip is Precip.NONE
    assert cfg.venue is None


def test_load_yaml_overrides(tmp_path):
    path = tmp_path / "cfg.yaml"
    path.write_text(
        "seed: derby\n"
        "environment:\n  wind_mph: '18'\n  precip: Heavy Rain\n"
        "knobs:\n  fourth_down_aggr: 80\n"
        "venue:\n  roof: dome\n  hfa_points: 2\n"
    )
    cfg = load_config(str(path))
    assert cfg.seed == "derby"
    assert cfg.environment.wind_mph == 18.0
    assert cfg.environment.precip is Precip.HEAVY_RAIN
    assert cfg.knobs.fourth_down_aggr == 80 and cfg.knobs.pace == 50
    assert cfg.venue.roof is Roof.DOME


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(str(path)) == FullConfig()


def test_shipped_config_loads():
    cfg = load_config(str(DEFAULT_YAML))
    assert cfg.metrics.path is None
    assert cfg.venue is not None


def test_rng_seeding():
    assert make_rng(3).random() == make_rng(3).random()
    assert make_rng("abc").random() == make_rng("abc").random()
    assert make_rng("abc").random() != make_rng("abd").random()
