"""API endpoint tests for Stairs Wireframe Studio.

Tests all FastAPI endpoints using the TestClient for synchronous testing.
Validates response codes, data integrity, and error handling.
"""
import sys
import os
import io
import inspect
import pytest
import ezdxf

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi.testclient import TestClient
import api
from api import app
from stairs_node import load_config


client = TestClient(app)


# ===========================================================================
# FIXTURES
# ===========================================================================

TWO_STEP_STAIRS = {"stairs": [{"steps": [
    {"min": [0.0, 0.0, 0.0], "max": [1.0, 1.0, 1.0]},
    {"min": [0.0, 0.0, 1.0], "max": [1.0, 1.0, 2.0]},
]}]}


def _cluster(x0, y, z0):
    return [[x0, y, z0], [x0 + 1.0, y, z0], [x0, y, z0 + 0.3], [x0 + 1.0, y, z0 + 0.3]]


@pytest.fixture(autouse=True)
def fresh_node():
    """Every test starts from a default node with an empty registry."""
    api.init_node(load_config())
    yield api.node


# ===========================================================================
# GET /defaults
# ===========================================================================

class TestDefaults:
    def test_defaults_returns_200(self):
        r = client.get("/defaults")
        assert r.status_code == 200

    def test_defaults_has_expected_keys(self):
        data = client.get("/defaults").json()
        for key in ["camera_frame", "world_frame", "namespace", "publish_steps", "publish_stairs"]:
            assert key in data, f"Missing key: {key}"


# ===========================================================================
# STAIRS SERVICES
# ===========================================================================

class TestStairsServices:
    def test_export_empty(self):
        r = client.get("/stairs")
        assert r.status_code == 200
        assert r.json() == {"stairs": []}

    def test_import_then_export(self):
        """Imported stairs come back unchanged and in order."""
        r = client.post("/stairs/import", json=TWO_STEP_STAIRS)
        assert r.status_code == 200
        assert r.json()["success"] is True
        assert client.get("/stairs").json() == TWO_STEP_STAIRS

    def test_import_inverted_slab_rejected(self):
        client.post("/stairs/import", json=TWO_STEP_STAIRS)
        bad = {"stairs": [{"steps": [{"min": [1, 1, 1], "max": [0, 0, 0]}]}]}
        r = client.post("/stairs/import", json=bad)
        assert r.status_code == 422
        assert client.get("/stairs").json() == TWO_STEP_STAIRS

    def test_import_short_point_rejected(self):
        bad = {"stairs": [{"steps": [{"min": [0, 0], "max": [1, 1, 1]}]}]}
        r = client.post("/stairs/import", json=bad)
        assert r.status_code == 422
        assert client.get("/stairs").json() == {"stairs": []}

    def test_import_missing_field_rejected(self):
        r = client.post("/stairs/import", json={"staircases": []})
        assert r.status_code == 422

    def test_clear_twice(self):
        client.post("/stairs/import", json=TWO_STEP_STAIRS)
        for _ in range(2):
            r = client.post("/stairs/clear")
            assert r.json() == {"success": True}
            assert client.get("/stairs").json() == {"stairs": []}


# ===========================================================================
# POST /frames
# ===========================================================================

class TestFrames:
    def test_frame_returns_fitted_steps(self):
        r = client.post("/frames", json={"clusters": [_cluster(0.0, 0.0, 1.0)]})
        assert r.status_code == 200
        steps = r.json()["steps"]
        assert steps == [{"min": [0.0, 0.0, 1.0], "max": [1.0, 0.0, 1.3]}]

    def test_frame_publishes_step_outlines(self):
        client.post("/frames", json={"clusters": [_cluster(0.0, 0.0, 1.0), _cluster(0.0, -0.2, 1.3)]})
        markers = client.get("/markers/steps").json()["markers"]
        assert len(markers) == 1
        assert len(markers[0]["points"]) == 16
        assert markers[0]["frame_id"] == api.CONFIG["camera_frame"]

    def test_frame_registers_staircase(self):
        clusters = [_cluster(0.0, -0.2 * i, 1.0 + 0.3 * i) for i in range(3)]
        r = client.post("/frames", json={"clusters": clusters, "staircases": [[0, 1, 2]]})
        assert r.json()["registered"] == 1
        stairs = client.get("/stairs").json()["stairs"]
        assert len(stairs) == 1
        assert len(stairs[0]["steps"]) == 3

    def test_frame_bad_group_rejected(self):
        r = client.post("/frames", json={"clusters": [_cluster(0.0, 0.0, 1.0)], "staircases": [[0, 3]]})
        assert r.status_code == 400
        assert client.get("/stairs").json() == {"stairs": []}

    def test_two_column_cluster_not_reinterpreted(self):
        two_column = [[0.0, 0.0], [1.0, 5.0], [2.0, 9.0]]
        r = client.post("/frames", json={"clusters": [two_column, _cluster(0.0, 0.0, 1.0)]})
        assert r.status_code == 200
        assert r.json()["steps"] == [{"min": [0.0, 0.0, 1.0], "max": [1.0, 0.0, 1.3]}]
        r = client.post("/frames", json={"clusters": [two_column], "staircases": [[0]]})
        assert r.status_code == 400


# ===========================================================================
# PUBLISH & MARKERS
# ===========================================================================

class TestPublish:
    def test_end_to_end_publish(self):
        """Import two slabs, export them back, publish a 20-point wireframe."""
        client.post("/stairs/import", json=TWO_STEP_STAIRS)
        assert client.get("/stairs").json() == TWO_STEP_STAIRS
        r = client.post("/publish")
        data = r.json()
        assert data["published"] is True
        assert len(data["markers"]) == 1
        marker = data["markers"][0]
        assert len(marker["points"]) == 20
        assert marker["frame_id"] == api.CONFIG["world_frame"]
        assert marker["id"] == 0
        assert marker["lifetime"] is None

    def test_markers_stairs_after_publish(self):
        client.post("/stairs/import", json=TWO_STEP_STAIRS)
        client.post("/publish")
        data = client.get("/markers/stairs").json()
        assert data["topic"] == api.CONFIG["stairs"]
        assert len(data["markers"]) == 1

    def test_unknown_channel(self):
        r = client.get("/markers/planes")
        assert r.status_code == 404

    def test_disconnected_camera_drops_new_stairs(self):
        """Moving the camera into another tree makes the world lookup fail."""
        client.post("/stairs/import", json=TWO_STEP_STAIRS)
        r = client.post("/transforms", json={"parent": "elsewhere", "child": api.CONFIG["camera_frame"]})
        assert r.status_code == 200
        r = client.post("/frames", json={"clusters": [_cluster(0.0, 0.0, 1.0)], "staircases": [[0]]})
        assert r.status_code == 200
        assert r.json()["registered"] == 0
        assert len(r.json()["steps"]) == 1
        assert client.get("/stairs").json() == TWO_STEP_STAIRS
        data = client.post("/publish").json()
        assert data["published"] is True
        assert len(data["markers"]) == 1


# ===========================================================================
# POST /transforms
# ===========================================================================

class TestTransforms:
    def test_camera_offset_applied(self):
        client.post("/transforms", json={
            "parent": api.CONFIG["robot_frame"],
            "child": api.CONFIG["camera_frame"],
            "translation": [0.0, 0.0, 2.0],
        })
        client.post("/frames", json={"clusters": [_cluster(0.0, 0.0, 1.0)], "staircases": [[0]]})
        marker = client.post("/publish").json()["markers"][0]
        # Min corner (0, 0, 1) in display axes, lifted by the camera offset
        assert marker["points"][0] == pytest.approx([1.0, 0.0, 2.0])

    def test_robot_motion_does_not_move_stairs(self):
        clusters = [_cluster(0.0, 0.0, 1.0), _cluster(0.0, -0.2, 1.3)]
        client.post("/frames", json={"clusters": clusters, "staircases": [[0, 1]]})
        before = client.post("/publish").json()["markers"][0]["points"]
        client.post("/transforms", json={
            "parent": api.CONFIG["world_frame"],
            "child": api.CONFIG["robot_frame"],
            "translation": [5.0, 0.0, 0.0],
        })
        after = client.post("/publish").json()["markers"][0]["points"]
        assert after == before

    def test_zero_quaternion_rejected(self):
        r = client.post("/transforms", json={"parent": "a", "child": "b", "rotation": [0, 0, 0, 0]})
        assert r.status_code == 400

    def test_cycle_rejected(self):
        r = client.post("/transforms", json={
            "parent": api.CONFIG["camera_frame"],
            "child": api.CONFIG["world_frame"],
        })
        assert r.status_code == 400


# ===========================================================================
# EXPORTS
# ===========================================================================

class TestDXFExport:
    def test_dxf_returns_200(self):
        client.post("/stairs/import", json=TWO_STEP_STAIRS)
        r = client.get("/export/dxf")
        assert r.status_code == 200
        assert "dxf" in r.headers.get("content-type", "").lower()

    def test_dxf_has_one_line_per_segment(self):
        client.post("/stairs/import", json=TWO_STEP_STAIRS)
        doc = ezdxf.read(io.StringIO(client.get("/export/dxf").text))
        lines = doc.modelspace().query("LINE")
        assert len(lines) == 10
        assert all(line.dxf.layer == "STAIRS" for line in lines)

    def test_exports_run_off_the_event_loop(self):
        """Blocking CAD writers are plain handlers, dispatched to the threadpool."""
        assert not inspect.iscoroutinefunction(api.export_dxf_file)
        assert not inspect.iscoroutinefunction(api.export_step_file)


class TestSTEPExport:
    def test_step_returns_200(self):
        client.post("/stairs/import", json=TWO_STEP_STAIRS)
        r = client.get("/export/step")
        assert r.status_code == 200
        assert b"ISO-10303-21" in r.content

    def test_step_empty_registry(self):
        r = client.get("/export/step")
        assert r.status_code == 400
