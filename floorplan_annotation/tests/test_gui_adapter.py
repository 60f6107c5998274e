"""
Tests for the GUI adapter.
"""

from unittest.mock import Mock

import pytest

from floorplan_annotation.interfaces import GUIAnnotationAdapter


@pytest.fixture
def adapter(session):
    return GUIAnnotationAdapter(
        session,
        on_export_ready=Mock(),
        on_marker_batch_changed=Mock(),
        update_view_callback=Mock(),
    )


class TestGUIAnnotationAdapter:
    """Test suite for GUIAnnotationAdapter."""

    def test_read_state(self, adapter):
        assert adapter.tool_mode == "pan"
        assert adapter.zoom_percent == 100
        assert not adapter.busy
        assert adapter.markers == []

    def test_read_state_when_closed(self, adapter):
        adapter.session.close()
        assert adapter.tool_mode is None
        assert adapter.zoom_percent is None
        assert adapter.markers == []

    def test_marker_batch_callback(self, adapter):
        adapter.select_tool("add")
        adapter.pointer_down(500, 250)
        adapter.pointer_up(500, 250)

        markers = adapter.on_marker_batch_changed.call_args[0][0]
        assert markers[0]["x"] == 50.0
        assert markers[0]["label"] == "1"
        assert adapter.markers == markers
        assert adapter.tool_mode == "pan"
        assert adapter.update_view_callback.called

    def test_export_ready_callback(self, adapter):
        artifact = adapter.session.export_markers()
        adapter.on_export_ready.assert_called_once_with(artifact.data, artifact.filename)

    def test_zoom_updates_view(self, adapter):
        adapter.update_view_callback.reset_mock()
        adapter.wheel(-1000)
        assert adapter.zoom_percent == 200
        adapter.update_view_callback.assert_called_once()

    def test_visualization_follows_viewport(self, adapter):
        cfg = adapter.session.cfg
        adapter.select_tool("add")
        adapter.pointer_down(500, 250)
        adapter.pointer_up(500, 250)
        adapter.session.model.confirm_editor()

        vis = adapter.get_visualization()
        assert vis.shape == (500, 1000, 3)
        assert tuple(vis[250, 500]) == tuple(cfg.export.incomplete_color)

        adapter.session.interaction.pan_by(100, 0)
        vis = adapter.get_visualization()
        assert tuple(vis[250, 600]) == tuple(cfg.export.incomplete_color)
        assert tuple(vis[250, 500]) == (0, 0, 0)

    def test_visualization_without_decoded_image(self, cfg, encoded_image):
        from floorplan_annotation.core.annotation import EditorContext, EditorSession

        session = EditorSession(cfg).open(
            EditorContext(image=encoded_image), surface_size=(100, 50)
        )
        assert GUIAnnotationAdapter(session).get_visualization() is None
