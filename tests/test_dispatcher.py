import pytest

from core.dispatcher import (
    CORRUPT_SETTINGS_MESSAGE,
    FATAL_MESSAGE,
    DispatchState,
    Dispatcher,
)
from core.errors import ExternalProcessFailure, HandlerFailure
from core.events import EventBus
from core.registry import ModuleRegistry
from core.settings import SettingsCorrupt
from modules.base import BaseModule
from modules.error import ErrorModule
from modules.install import InstallModule


class RecordingModule(BaseModule):
    name = "gallery"
    calls = []

    def build_action_map(self):
        return {"index": self.index, "show": self.show, "boom": self.boom, "spawn": self.spawn}

    def index(self):
        RecordingModule.calls.append(("index", ()))
        return {"settings_template": self.settings.is_template}

    def show(self, *args):
        RecordingModule.calls.append(("show", args))
        return {"args": args}

    def boom(self):
        raise HandlerFailure("db unreachable", code=7)

    def spawn(self):
        raise ExternalProcessFailure("daemon failed", code=1, exit_code=2, output="disk full")


class CrashingModule(BaseModule):
    name = "crash"

    def build_action_map(self):
        return {"index": self.index}

    def index(self):
        return {}["missing"]


class BrokenErrorModule(BaseModule):
    name = "error"

    def build_action_map(self):
        return {"display": self.display}

    def display(self, failure):
        raise RuntimeError("template engine exploded")


@pytest.fixture(autouse=True)
def _reset_calls():
    RecordingModule.calls = []
    yield


def build(*extra):
    registry = ModuleRegistry()
    for module_cls in (RecordingModule, CrashingModule, InstallModule, ErrorModule) + extra:
        registry.register(module_cls.name, module_cls)
    return registry


@pytest.fixture
def bus():
    return EventBus()


def make_dispatcher(settings_file, default_settings_file, bus, registry=None):
    return Dispatcher(
        registry or build(),
        settings_file=settings_file,
        default_settings_file=default_settings_file,
        event_bus=bus,
    )


def test_valid_settings_dispatch_to_requested_handler(settings_file, default_settings_file, bus):
    result = make_dispatcher(settings_file, default_settings_file, bus).dispatch("/gallery/show/3/b")
    assert result.state is DispatchState.RENDERING
    assert result.states == (
        DispatchState.BOOTSTRAPPING,
        DispatchState.READY,
        DispatchState.DISPATCHING,
        DispatchState.RENDERING,
    )
    assert result.page.template == "gallery/show.html"
    assert result.page.data == {"args": ("3", "b")}
    assert RecordingModule.calls == [("show", ("3", "b"))]
    assert result.failure is None


def test_corrupt_settings_never_reach_registry(corrupt_settings_file, default_settings_file, bus):
    class ExplodingRegistry(ModuleRegistry):
        def resolve(self, name, context):
            raise AssertionError("registry must not be consulted")

    dispatcher = make_dispatcher(
        corrupt_settings_file, default_settings_file, bus, registry=ExplodingRegistry()
    )
    result = dispatcher.dispatch("/gallery/show")
    assert result.is_fatal
    assert result.fatal_message == CORRUPT_SETTINGS_MESSAGE
    assert result.page is None
    assert RecordingModule.calls == []


def test_corrupt_outcome_from_custom_loader(settings_file, default_settings_file, bus):
    dispatcher = Dispatcher(
        build(),
        settings_file=settings_file,
        default_settings_file=default_settings_file,
        event_bus=bus,
        settings_loader=lambda path, template=False: SettingsCorrupt("boom"),
    )
    result = dispatcher.dispatch("/")
    assert result.states[-1] is DispatchState.FATAL
    assert result.fatal_message == CORRUPT_SETTINGS_MESSAGE


def test_invalid_settings_reroute_to_install_welcome(missing_settings_file, default_settings_file, bus):
    result = make_dispatcher(missing_settings_file, default_settings_file, bus).dispatch("/gallery/show/1")
    assert result.state is DispatchState.RENDERING
    assert result.request_path.module == "install"
    assert result.request_path.action == "welcome"
    assert result.request_path.arguments == ()
    assert result.page.layout == "install"
    assert result.page.data["setup_pending"] is True
    assert RecordingModule.calls == []


def test_invalid_settings_keep_requested_install_action(missing_settings_file, default_settings_file, bus):
    result = make_dispatcher(missing_settings_file, default_settings_file, bus).dispatch("/install/advanced")
    assert result.request_path.module == "install"
    assert result.request_path.action == "advanced"
    assert result.page.template == "install/advanced.html"


def test_invalid_settings_use_template_document(missing_settings_file, default_settings_file, bus):
    registry = build()
    registry.unregister("install")
    registry.register("install", RecordingModule)
    result = make_dispatcher(missing_settings_file, default_settings_file, bus, registry).dispatch("/install")
    assert result.page.data == {"settings_template": True}


def test_unusable_template_document_is_fatal(missing_settings_file, corrupt_settings_file, bus):
    result = make_dispatcher(missing_settings_file, corrupt_settings_file, bus).dispatch("/")
    assert result.is_fatal
    assert result.fatal_message == FATAL_MESSAGE


def test_unknown_module_routes_to_diagnostics(settings_file, default_settings_file, bus):
    result = make_dispatcher(settings_file, default_settings_file, bus).dispatch("/frobnicate")
    assert result.state is DispatchState.RENDERING
    assert DispatchState.RECOVERING in result.states
    assert result.page.module == "error"
    assert result.page.status == 500
    assert "frobnicate" in result.failure.message
    assert "frobnicate" in result.page.data["message"]
    assert result.request_path.module == "frobnicate"


def test_unknown_action_routes_to_diagnostics(settings_file, default_settings_file, bus):
    result = make_dispatcher(settings_file, default_settings_file, bus).dispatch("/gallery/nope")
    assert result.page.module == "error"
    assert result.failure.code == 404


def test_handler_failure_is_projected(settings_file, default_settings_file, bus):
    result = make_dispatcher(settings_file, default_settings_file, bus).dispatch("/gallery/boom")
    assert result.page.data == {
        "message": "db unreachable",
        "code": 7,
        "exit_code": -1,
        "captured_output": "",
    }


def test_process_failure_surfaces_exit_code_and_output(settings_file, default_settings_file, bus):
    result = make_dispatcher(settings_file, default_settings_file, bus).dispatch("/gallery/spawn")
    assert result.page.data["exit_code"] == 2
    assert result.page.data["captured_output"] == "disk full"
    assert result.failure.exit_code == 2


def test_unexpected_exception_is_recovered(settings_file, default_settings_file, bus):
    result = make_dispatcher(settings_file, default_settings_file, bus).dispatch("/crash")
    assert result.page.module == "error"
    assert result.page.data["code"] == 0
    assert "missing" in result.page.data["message"]


def test_failure_is_published(settings_file, default_settings_file, bus):
    listener = bus.listen()
    make_dispatcher(settings_file, default_settings_file, bus).dispatch("/gallery/boom")
    message = listener.get_nowait()
    assert message["type"] == "dispatch_failure"
    assert message["payload"]["code"] == 7
    assert message["payload"]["path"] == "/gallery/boom"


def test_failing_diagnostic_module_is_fatal(settings_file, default_settings_file, bus):
    registry = build()
    registry.unregister("error")
    registry.register("error", BrokenErrorModule)
    result = make_dispatcher(settings_file, default_settings_file, bus, registry).dispatch("/gallery/boom")
    assert result.is_fatal
    assert result.fatal_message == FATAL_MESSAGE
    assert result.failure.message == "db unreachable"


def test_missing_diagnostic_module_is_fatal(settings_file, default_settings_file, bus):
    registry = build()
    registry.unregister("error")
    result = make_dispatcher(settings_file, default_settings_file, bus, registry).dispatch("/frobnicate")
    assert result.is_fatal
    assert result.fatal_message == FATAL_MESSAGE


def test_requesting_diagnostic_module_directly_does_not_recover(settings_file, default_settings_file, bus):
    listener = bus.listen()
    result = make_dispatcher(settings_file, default_settings_file, bus).dispatch("/error/display")
    assert result.is_fatal
    assert result.fatal_message == FATAL_MESSAGE
    assert listener.empty()


def test_form_is_passed_read_only(settings_file, default_settings_file, bus):
    seen = {}

    class FormModule(BaseModule):
        name = "form"

        def build_action_map(self):
            return {"index": self.index}

        def index(self):
            seen["form"] = self.context.form
            return {}

    dispatcher = make_dispatcher(settings_file, default_settings_file, bus, build(FormModule))
    dispatcher.dispatch("/form", form={"a": "1"})
    assert seen["form"]["a"] == "1"
    with pytest.raises(TypeError):
        seen["form"]["a"] = "2"


def test_deeply_nested_settings_are_fatal(tmp_path, default_settings_file, bus):
    path = tmp_path / "settings.json"
    path.write_text("[" * 100000)
    result = make_dispatcher(path, default_settings_file, bus).dispatch("/gallery/show")
    assert result.is_fatal
    assert result.fatal_message == CORRUPT_SETTINGS_MESSAGE
    assert RecordingModule.calls == []


def test_crashing_settings_loader_is_fatal(settings_file, default_settings_file, bus):
    def loader(path, template=False):
        raise RecursionError("maximum recursion depth exceeded")

    dispatcher = Dispatcher(
        build(),
        settings_file=settings_file,
        default_settings_file=default_settings_file,
        event_bus=bus,
        settings_loader=loader,
    )
    result = dispatcher.dispatch("/gallery")
    assert result.states[-1] is DispatchState.FATAL
    assert result.fatal_message == CORRUPT_SETTINGS_MESSAGE


def test_get_on_state_changing_action_is_diagnosed(missing_settings_file, default_settings_file, bus):
    result = make_dispatcher(missing_settings_file, default_settings_file, bus).dispatch(
        "/install/finish", method="GET"
    )
    assert result.page.module == "error"
    assert result.failure.code == 405
    assert "does not accept GET" in result.page.data["message"]
    assert not missing_settings_file.exists()


def test_request_method_reaches_handler(settings_file, default_settings_file, bus):
    seen = []

    class MethodModule(BaseModule):
        name = "method"

        def build_action_map(self):
            return {"index": self.index}

        def index(self):
            seen.append(self.context.method)
            return {}

    dispatcher = make_dispatcher(settings_file, default_settings_file, bus, build(MethodModule))
    dispatcher.dispatch("/method", method="post")
    dispatcher.dispatch("/method")
    assert seen == ["POST", "GET"]
