import cv2
import numpy as np
import pytest

from fakes import PROP_COLOR, make_face
from hatter.models.errors import RenderError
from hatter.models.scene import Scene
from hatter.services import render_service as render_module
from hatter.services.render_service import RenderService
from hatter.services.scene_service import SceneService


@pytest.fixture
def scene(image, prop, face):
    service = SceneService()
    return service.with_debug_layer(service.build(image, [face], prop), [face])


def test_output_matches_base_image_size(scene, image):
    pixels = RenderService().flatten(scene, debug_visible=False)
    assert pixels.shape == image.pixels.shape
    assert pixels.dtype == np.uint8


def test_empty_scene_renders_the_base_image(image, prop):
    pixels = RenderService().flatten(Scene(image=image, prop=prop), debug_visible=True)
    assert np.array_equal(pixels, image.pixels)


def test_prop_covers_the_face_left_anchor(scene):
    pixels = RenderService().flatten(scene)
    anchor = scene.placements[0].anchors.left
    assert tuple(pixels[int(round(anchor.y)), int(round(anchor.x))]) == PROP_COLOR


def test_base_image_is_not_modified(scene, image):
    before = image.pixels.copy()
    RenderService().flatten(scene, debug_visible=True)
    assert np.array_equal(image.pixels, before)


def test_transparent_prop_leaves_image_untouched(image, prop, face):
    clear = prop.pixels.copy()
    clear[:, :, 3] = 0
    from hatter.models.prop_asset import PropAsset
    ghost = PropAsset(asset_id="ghost", pixels=clear, left_anchor=prop.left_anchor, right_anchor=prop.right_anchor)
    scene = SceneService().build(image, [face], ghost)
    assert np.array_equal(RenderService().flatten(scene), image.pixels)


class TestDebugVisibility:
    def test_placements_identical_with_and_without_debug(self, scene):
        service = RenderService()
        hidden = service.flatten(scene, debug_visible=False)
        assert np.array_equal(hidden, service.render_placements(scene))

        plain = Scene(image=scene.image, prop=scene.prop, placements=scene.placements)
        assert np.array_equal(hidden, service.flatten(plain, debug_visible=False))

    def test_debug_layer_only_adds_annotations(self, scene):
        service = RenderService()
        hidden = service.flatten(scene, debug_visible=False)
        shown = service.flatten(scene, debug_visible=True)
        assert not np.array_equal(hidden, shown)

        # the chin landmark is marked green on the debug render only
        chin = scene.debug_layer.landmarks[8].point
        x, y = int(round(chin.x)), int(round(chin.y))
        assert tuple(shown[y, x]) == (0, 255, 0)
        assert tuple(hidden[y, x]) == (128, 128, 128)

    def test_every_placement_is_drawn(self, image, prop):
        faces = [make_face(cx=140, cy=130, r=40), make_face(cx=160, cy=130, r=40)]
        scene = SceneService().build(image, faces, prop)
        one = SceneService().build(image, faces[:1], prop)
        assert not np.array_equal(RenderService().flatten(scene), RenderService().flatten(one))


def test_compositor_failure_raises_render_error(scene, monkeypatch):
    def broken(*args, **kwargs):
        raise cv2.error("no drawing surface")

    monkeypatch.setattr(render_module.cv2, "warpAffine", broken)
    with pytest.raises(RenderError):
        RenderService().flatten(scene)


def test_hidden_colour_does_not_bleed_at_prop_edges(image, face):
    # opaque red square inside a fully transparent green raster
    pixels = np.zeros((100, 200, 4), dtype=np.uint8)
    pixels[:, :, 1] = 255
    pixels[20:90, 30:170] = (255, 0, 0, 255)
    from hatter.models.prop_asset import PropAsset
    from hatter.models.geometry import Point
    fringed = PropAsset(asset_id="fringed", pixels=pixels, left_anchor=Point(40, 80), right_anchor=Point(160, 80))

    out = RenderService().flatten(SceneService().build(image, [face], fringed))

    # the grey base contributes equally to green and blue; the prop contributes neither
    assert np.array_equal(out[:, :, 1], out[:, :, 2])
    assert (out[:, :, 1] <= 128).all()
    assert (out[:, :, 1] < 128).any()
