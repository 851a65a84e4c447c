import io
import json

from conftest import frame
from curlcounter.runtime.cli import iter_frames, main, replay


def jsonl(angles, start=1000.0):
    lines = []
    for i, a in enumerate(angles):
        lms = [None if lm is None else {"x": lm.x, "y": lm.y, "visibility": lm.visibility}
               for lm in frame(left=a)]
        lines.append(json.dumps({"ts": start + i / 30.0, "landmarks": lms}))
    return "\n".join(lines) + "\n"


def test_iter_frames_skips_bad_lines():
    src = io.StringIO('{"ts": 1.0, "landmarks": []}\n\nnot json\n[1, 2]\n{"landmarks": null}\n')
    assert list(iter_frames(src)) == [(1.0, []), (None, [])]


def test_iter_frames_skips_wrongly_typed_fields(caplog):
    src = io.StringIO(
        '{"ts": "soon", "landmarks": []}\n'
        '{"ts": true, "landmarks": []}\n'
        '{"ts": 2.0, "landmarks": {"x": 1}}\n'
        '{"ts": 3, "landmarks": [null]}\n'
    )
    assert list(iter_frames(src)) == [(3, [None])]
    assert "line 1" in caplog.text


def test_replay_survives_garbage_landmarks():
    lines = [
        '{"ts": "soon", "landmarks": []}',
        json.dumps({"ts": 1.0, "landmarks": [{"x": "a", "y": 0.1}] * 33}),
        json.dumps({"ts": 1.1, "landmarks": [5] * 33}),
    ]
    out = io.StringIO()
    assert replay(io.StringIO("\n".join(lines) + "\n"), out=out) == 0
    assert out.getvalue().splitlines() == ["total reps: 0"]


def test_replay_counts_left_arm_reps():
    out = io.StringIO()
    total = replay(io.StringIO(jsonl([175.0] * 3 + [40.0] * 3 + [175.0] * 3)), out=out)
    assert total == 1
    lines = out.getvalue().splitlines()
    assert lines[0].startswith("rep 1 (left)")
    assert lines[-1] == "total reps: 1"


def test_main_reads_file(tmp_path, capsys):
    path = tmp_path / "frames.jsonl"
    path.write_text(jsonl([175.0] * 3))
    assert main([str(path)]) == 0
    assert "total reps: 0" in capsys.readouterr().out


def test_main_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "nope.jsonl")]) == 1
    assert "Error" in capsys.readouterr().err
