import numpy as np
from PIL import Image as PILImage

from fakes import FailOnceDetector, StubDetector, make_face, make_image
from hatter.cli.hat_image import parse_args, run


def _write(path, image):
    PILImage.fromarray(image.pixels).save(path)


def test_folder_is_hatted(tmp_path, make_pipeline):
    photos = tmp_path / "photos"
    photos.mkdir()
    _write(photos / "a.png", make_image())
    _write(photos / "b.jpg", make_image(240, 220))
    (photos / "notes.txt").write_text("skip me")

    args = parse_args([str(photos), "-o", str(tmp_path / "out")])
    failures = run(args, pipeline=make_pipeline())

    assert failures == 0
    outputs = sorted(p.name for p in (tmp_path / "out").iterdir())
    assert outputs == ["a-hatted.png", "b-hatted.png"]
    assert np.asarray(PILImage.open(tmp_path / "out" / "b-hatted.png")).shape == (220, 240, 3)


def test_faceless_image_counts_as_failure(tmp_path, make_pipeline):
    _write(tmp_path / "empty.png", make_image())
    args = parse_args([str(tmp_path / "empty.png"), "-o", str(tmp_path / "out"), "--debug"])
    failures = run(args, pipeline=make_pipeline(detector=StubDetector(all_faces=[], best_face=None)))

    assert failures == 1
    assert not (tmp_path / "out").exists()


def test_debug_flag_draws_overlay(tmp_path, make_pipeline):
    _write(tmp_path / "one.png", make_image())
    plain_args = parse_args([str(tmp_path / "one.png"), "-o", str(tmp_path / "plain")])
    debug_args = parse_args([str(tmp_path / "one.png"), "-o", str(tmp_path / "debug"), "--debug"])
    run(plain_args, pipeline=make_pipeline(detector=StubDetector(all_faces=[make_face()])))
    run(debug_args, pipeline=make_pipeline(detector=StubDetector(all_faces=[make_face()])))

    plain = np.asarray(PILImage.open(tmp_path / "plain" / "one-hatted.png"))
    debug = np.asarray(PILImage.open(tmp_path / "debug" / "one-hatted.png"))
    assert not np.array_equal(plain, debug)


def test_unexpected_error_skips_only_that_image(tmp_path, make_pipeline):
    photos = tmp_path / "photos"
    photos.mkdir()
    _write(photos / "a.png", make_image())
    _write(photos / "b.png", make_image())

    detector = FailOnceDetector(RuntimeError("onnxruntime session failed"), all_faces=[make_face()])
    args = parse_args([str(photos), "-o", str(tmp_path / "out")])
    failures = run(args, pipeline=make_pipeline(detector=detector))

    assert failures == 1
    assert [p.name for p in (tmp_path / "out").iterdir()] == ["b-hatted.png"]
