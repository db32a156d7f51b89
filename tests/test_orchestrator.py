"""Tests for install orchestration and the operation gate."""

import asyncio

import pytest

from tracemap_cli.errors import OperationError
from tracemap_cli.installer.protocol import InstallOptions
from tracemap_cli.installer.protocol import InstallTarget
from tracemap_cli.tracemap import TraceMap

BASE = "https://example.com/app/"


class RecordingInstaller:
    """Installer that logs every step so interleaving is visible."""

    def __init__(self, log, options):
        self.log = log
        self.options = options
        self.id = sum(1 for event in log if event[0] == "create")
        log.append(("create", self.id))

    async def install(self, target, name=None):
        await self._step(name or target)

    async def trace_install(self, specifier, parent_url, system=False):
        await self._step(specifier)

    async def _step(self, what):
        self.log.append(("start", self.id, what))
        if what == "bad":
            raise RuntimeError("boom")
        await asyncio.sleep(0.01)
        self.log.append(("end", self.id, what))

    def complete(self):
        self.log.append(("complete", self.id))


@pytest.fixture
def install_log():
    return []


@pytest.fixture
def installers():
    return []


@pytest.fixture
def trace_map(install_log, installers):
    def factory(trace_map, options):
        installer = RecordingInstaller(install_log, options)
        installers.append(installer)
        return installer

    return TraceMap(BASE, {"imports": {"a": "./a.js", "b": "./b.js"}}, installer_factory=factory)


def _started(install_log, installer_id):
    return sorted(event[2] for event in install_log if event[0] == "start" and event[1] == installer_id)


class TestMutualExclusion:
    @pytest.mark.asyncio
    async def test_operations_never_interleave(self, trace_map, install_log):
        await asyncio.gather(
            trace_map.install(["x", "y"]),
            trace_map.lock_install(),
            trace_map.install(InstallTarget(name="z", target="./z.js")),
        )

        ids = [event[1] for event in install_log]
        assert ids == sorted(ids)
        assert [event for event in install_log if event[0] == "complete"] == [
            ("complete", 0),
            ("complete", 1),
            ("complete", 2),
        ]
        assert _started(install_log, 0) == ["x", "y"]
        assert _started(install_log, 1) == ["a", "b"]
        assert _started(install_log, 2) == ["z"]

    @pytest.mark.asyncio
    async def test_package_work_runs_concurrently(self, trace_map, install_log):
        await trace_map.install(["x", "y"])

        assert [event[0] for event in install_log] == ["create", "start", "start", "end", "end", "complete"]

    @pytest.mark.asyncio
    async def test_gate_released_after_failure(self, trace_map, install_log):
        with pytest.raises(RuntimeError):
            await trace_map.install("bad")

        await asyncio.wait_for(trace_map.install("x"), timeout=1)

        assert install_log[-1] == ("complete", 1)

    @pytest.mark.asyncio
    async def test_failed_operation_stops_sibling_work(self, trace_map, install_log):
        with pytest.raises(RuntimeError):
            await trace_map.install(["slow", "bad"])

        await trace_map.install("next")
        # Long enough for the first operation's other package to have finished
        await asyncio.sleep(0.05)

        ids = [event[1] for event in install_log]
        assert ids == sorted(ids)
        assert ("end", 0, "slow") not in install_log
        assert install_log[-1] == ("complete", 1)

    @pytest.mark.asyncio
    async def test_failed_operation_does_not_complete(self, trace_map, install_log):
        with pytest.raises(RuntimeError):
            await trace_map.install("bad")
        assert ("complete", 0) not in install_log

    @pytest.mark.asyncio
    async def test_operations_return_the_handle(self, trace_map):
        assert await trace_map.install("x") is trace_map
        assert await trace_map.trace_install("a") is trace_map
        assert await trace_map.lock_install() is trace_map


class TestTraceInstall:
    @pytest.mark.asyncio
    async def test_defaults_to_all_imports_in_lock_mode(self, trace_map, install_log, installers):
        await trace_map.trace_install()

        assert _started(install_log, 0) == ["a", "b"]
        assert installers[0].options.lock is True

    @pytest.mark.asyncio
    async def test_explicit_lock_setting_is_kept(self, trace_map, installers):
        await trace_map.trace_install(options=InstallOptions(lock=False))
        assert installers[0].options.lock is False

    @pytest.mark.asyncio
    async def test_explicit_modules(self, trace_map, install_log, installers):
        await trace_map.trace_install("./main.js")

        assert _started(install_log, 0) == ["./main.js"]
        assert installers[0].options.lock is False

    @pytest.mark.asyncio
    async def test_lock_install_forces_lock(self, trace_map, installers):
        await trace_map.lock_install(InstallOptions(depcache=True))

        assert installers[0].options.lock is True
        assert installers[0].options.depcache is True


class TestUpgrade:
    @pytest.mark.asyncio
    async def test_upgrade_reinstalls_named_packages(self, trace_map, install_log):
        await trace_map.upgrade("a")

        assert trace_map.map.imports == {"b": "./b.js"}
        assert _started(install_log, 0) == ["a"]

    @pytest.mark.asyncio
    async def test_upgrade_defaults_to_all_imports(self, trace_map, install_log):
        await trace_map.upgrade()

        assert _started(install_log, 0) == ["a", "b"]
        assert trace_map.map.imports == {}

    @pytest.mark.asyncio
    async def test_upgrade_without_packages(self, install_log):
        trace_map = TraceMap(BASE, installer_factory=lambda tm, options: RecordingInstaller(install_log, options))

        with pytest.raises(OperationError) as exc_info:
            await trace_map.upgrade()

        assert exc_info.value.code == "INVALID_OPERATION"
        assert install_log == []

    @pytest.mark.asyncio
    async def test_upgrade_unknown_package_changes_nothing(self, trace_map, install_log):
        with pytest.raises(OperationError):
            await trace_map.upgrade(["a", "missing"])

        assert trace_map.map.imports == {"a": "./a.js", "b": "./b.js"}
        assert install_log == []


class TestUninstall:
    @pytest.mark.asyncio
    async def test_uninstall_retraces_remaining_imports(self, trace_map, install_log, installers):
        await trace_map.uninstall("a")

        assert trace_map.map.imports == {"b": "./b.js"}
        assert _started(install_log, 0) == ["b"]
        options = installers[0].options
        assert (options.lock, options.clean, options.force) == (True, True, False)

    @pytest.mark.asyncio
    async def test_uninstall_force(self, trace_map, installers):
        await trace_map.uninstall(["a"], force=True)
        assert installers[0].options.force is True

    @pytest.mark.asyncio
    async def test_uninstall_keeps_caller_options(self, trace_map, installers):
        options = InstallOptions(system=True, depcache=True, resolutions={"b": "./b2.js"})

        await trace_map.uninstall("a", options=options)

        used = installers[0].options
        assert (used.lock, used.clean, used.force) == (True, True, False)
        assert used.system is True
        assert used.depcache is True
        assert used.resolutions == {"b": "./b2.js"}

    @pytest.mark.asyncio
    async def test_uninstall_requires_packages(self, trace_map):
        with pytest.raises(OperationError):
            await trace_map.uninstall([])

    @pytest.mark.asyncio
    async def test_uninstall_unknown_package(self, trace_map, install_log):
        with pytest.raises(OperationError):
            await trace_map.uninstall(["a", "missing"])

        assert "a" in trace_map.map.imports
        assert install_log == []

    @pytest.mark.asyncio
    async def test_uninstall_blocked_entry_is_not_top_level(self, install_log):
        trace_map = TraceMap(
            BASE,
            {"imports": {"blocked": None}},
            installer_factory=lambda tm, options: RecordingInstaller(install_log, options),
        )
        with pytest.raises(OperationError):
            await trace_map.uninstall("blocked")


class TestInstallEnv:
    @pytest.mark.asyncio
    async def test_switches_env_and_retraces(self, trace_map, install_log, installers):
        await trace_map.install_env(["browser", "development"])

        assert trace_map.env == ("browser", "development")
        assert _started(install_log, 0) == ["a", "b"]
        assert installers[0].options.clean is True
        assert installers[0].options.lock is True

    @pytest.mark.asyncio
    async def test_keeps_caller_options(self, trace_map, installers):
        await trace_map.install_env(["node"], InstallOptions(system=True))

        used = installers[0].options
        assert used.system is True
        assert (used.lock, used.clean) == (True, True)

    @pytest.mark.asyncio
    async def test_queued_behind_running_install(self, trace_map, install_log):
        await asyncio.gather(trace_map.install("x"), trace_map.install_env(["node"]))

        assert install_log.index(("complete", 0)) < install_log.index(("create", 1))
        assert trace_map.env == ("node",)
