"""Command runner and pactl backend."""

from bt_profile_switch.audio.pactl import CommandResult, PactlBackend, run_command


async def test_missing_binary_is_captured():
    result = await run_command(["/nonexistent/definitely-not-pactl", "list"])
    assert not result.success
    assert result.exit_status == -1
    assert result.stderr
    assert result.stdout == ""


async def test_output_and_exit_status():
    result = await run_command(["sh", "-c", "echo out; echo err >&2; exit 3"])
    assert not result.success
    assert result.exit_status == 3
    assert result.stdout == "out\n"
    assert result.stderr == "err\n"


async def test_success():
    result = await run_command(["sh", "-c", "printf 'ok'"])
    assert result.success
    assert result.exit_status == 0
    assert result.stdout == "ok"


def test_details_fallback_order():
    assert CommandResult(False, "so", " se \n", 1).details() == "se"
    assert CommandResult(False, "so\n", "", 1).details() == "so"
    assert CommandResult(False, "", "", 1).details() == "Unknown error"


async def test_backend_builds_argv_and_forces_c_locale(pactl):
    backend = PactlBackend("/usr/bin/pactl", runner=pactl)
    await backend.list_cards_short()
    await backend.list_cards()
    await backend.set_card_profile("bluez_card.0", "a2dp-sink")
    assert pactl.calls == [
        ["/usr/bin/pactl", "list", "cards", "short"],
        ["/usr/bin/pactl", "list", "cards"],
        ["/usr/bin/pactl", "set-card-profile", "bluez_card.0", "a2dp-sink"],
    ]
    assert all(env["LC_ALL"] == "C" for env in pactl.envs)


async def test_backend_converts_runner_exceptions():
    async def broken_runner(argv, env=None):
        raise RuntimeError("boom")

    result = await PactlBackend(runner=broken_runner).list_cards()
    assert not result.success
    assert result.exit_status == -1
    assert result.stderr == "boom"


async def test_empty_argv_is_a_failed_result():
    result = await run_command([])
    assert not result.success
    assert result.exit_status == -1
    assert result.stderr == "No command given"


async def test_unrunnable_argv_is_a_failed_result():
    result = await run_command(["pac\0tl", "list"])
    assert not result.success
    assert result.exit_status == -1
    assert "null" in result.stderr
