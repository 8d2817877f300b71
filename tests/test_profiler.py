import json

from voxelstream.debug.profiler import RuntimeProfiler


def test_sections_are_aggregated_into_frames():
    profiler = RuntimeProfiler(slow_frame_ms=0.0)
    profiler.begin_frame("tick", {"chunk": [0, 0]})
    with profiler.section("world.update"):
        pass
    profiler.record_section_ms("world.update", 2.0)
    profiler.end_frame({"loaded_chunks": 36})

    assert len(profiler.section_samples_ms["world.update"]) == 2
    assert len(profiler.frame_samples_ms["frame.tick"]) == 1
    slow = profiler.slow_frames[0]
    assert slow["context"] == {"chunk": [0, 0], "loaded_chunks": 36}
    assert slow["sections_ms"]["world.update"] >= 2.0


def test_stats_percentiles():
    profiler = RuntimeProfiler()
    stats = profiler.stats([float(v) for v in range(1, 101)])
    assert stats["count"] == 100.0
    assert stats["p95_ms"] == 95.0
    assert stats["max_ms"] == 100.0
    assert profiler.stats([])["avg_ms"] == 0.0


def test_slow_frame_history_is_bounded():
    profiler = RuntimeProfiler(slow_frame_ms=0.0, max_slow_frames=3)
    for _ in range(5):
        profiler.begin_frame("draw")
        profiler.end_frame()
    assert len(profiler.slow_frames) == 3


def test_report_files(tmp_path):
    profiler = RuntimeProfiler(slow_frame_ms=0.0)
    profiler.begin_frame("tick")
    with profiler.section("tick.controller"):
        pass
    profiler.end_frame()

    txt_path, json_path = profiler.write_report(tmp_path)
    report = json.loads(json_path.read_text(encoding="utf-8"))
    assert "tick.controller" in report["section_stats_ms"]
    assert "tick.controller" in txt_path.read_text(encoding="utf-8")


def test_disabled_profiler_records_nothing(tmp_path):
    profiler = RuntimeProfiler(enabled=False)
    profiler.begin_frame("tick")
    with profiler.section("anything"):
        pass
    assert profiler.end_frame() == 0.0
    assert profiler.summary()["section_stats_ms"] == {}
    assert profiler.write_report(tmp_path) is None
