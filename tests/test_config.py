from derby_draw import config
from derby_draw.engine.telemetry import TelemetryCollector, TelemetryFrame, TelemetryRacerFrame


def test_get_config_reads_dot_paths():
    assert config.get_config("race_engine.max_velocity") == 0.28
    assert config.get_config("celebration.bursts") == 6
    assert config.get_config("race_engine.missing_key", 1.5) == 1.5
    assert config.get_config("draw.duration_seconds.deeper", "x") == "x"


def test_load_config_missing_file_warns(tmp_path, capsys):
    assert config.load_config(str(tmp_path / "nope.json")) is None
    assert "Warning" in capsys.readouterr().out


def test_load_config_malformed_file_warns(tmp_path, capsys):
    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    assert config.load_config(str(broken)) is None
    assert "Warning" in capsys.readouterr().out


def test_env_flag(monkeypatch):
    monkeypatch.setenv("DERBY_DRAW_TEST_FLAG", "Yes")
    assert config.env_flag("DERBY_DRAW_TEST_FLAG")
    monkeypatch.setenv("DERBY_DRAW_TEST_FLAG", "0")
    assert not config.env_flag("DERBY_DRAW_TEST_FLAG", default=True)
    monkeypatch.delenv("DERBY_DRAW_TEST_FLAG")
    assert config.env_flag("DERBY_DRAW_TEST_FLAG", default=True)


def test_telemetry_collector_records_frames():
    collector = TelemetryCollector()
    frame = TelemetryFrame(
        tick=1,
        time=0.016,
        dt=0.016,
        slow_motion=False,
        phase="race",
        racers=[
            TelemetryRacerFrame(
                name="Test Runner",
                lane=0,
                progress=0.001,
                velocity=0.02,
                target_velocity=0.05,
                event="none",
                burst_boost=0.0,
            )
        ],
    )
    collector.record_frame(frame)
    exported = collector.export()
    assert len(exported) == 1
    assert exported[0].racers[0].name == "Test Runner"
    assert collector.as_dicts()[0]["racers"][0]["finish_time"] is None
    collector.clear()
    assert collector.export() == ()
