import pytest
from PySide6.QtCore import QCoreApplication


def pw_node(oid, media_class="Stream/Input/Audio", app=None, node_name=None, **extra):
    """Builds a pw-dump style node object."""
    props = {}
    if media_class is not None:
        props["media.class"] = media_class
    if app is not None:
        props["application.name"] = app
    if node_name is not None:
        props["node.name"] = node_name
    props.update(extra)
    return {"id": oid, "type": "PipeWire:Interface:Node", "info": {"props": props}}


def pw_gone(oid):
    """pw-dump --monitor reports a destroyed object as {"id": N, "info": null}."""
    return {"id": oid, "info": None}


class RecordingSink:
    def __init__(self):
        self.calls = []

    def mic_changed(self, is_active, app_name):
        self.calls.append((is_active, app_name))


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest.fixture
def sink():
    return RecordingSink()
