import pytest

from jenkins_mattermost.core.notify import AbortError, MattermostSendStep


def test_empty_strings_count_as_unset():
    step = MattermostSendStep("hi", color="", channel="", endpoint="", icon="")
    assert step.color is None
    assert step.channel is None
    assert step.endpoint is None
    assert step.icon is None
    assert MattermostSendStep.function_name == "mattermostSend"


def test_step_falls_back_to_global_settings(settings, fake_service):
    captured = {}

    def factory(resolved):
        captured["settings"] = resolved
        return fake_service

    step = MattermostSendStep("Deployed")
    assert step.run(settings, service_factory=factory) is True
    assert captured["settings"].endpoint == settings.endpoint
    assert captured["settings"].room == "builds"
    assert fake_service.published == [{"message": "Deployed", "color": ""}]


def test_step_overrides_global_settings(settings, fake_service):
    captured = {}

    def factory(resolved):
        captured["settings"] = resolved
        return fake_service

    step = MattermostSendStep(
        "Deployed", color="good", channel="ops", endpoint="http://other/hooks/1", icon="http://i"
    )
    step.run(settings, service_factory=factory)
    resolved = captured["settings"]
    assert (resolved.endpoint, resolved.room, resolved.icon) == ("http://other/hooks/1", "ops", "http://i")
    assert settings.room == "builds"
    assert fake_service.published[-1]["color"] == "good"


def test_failure_raises_only_with_fail_on_error(settings, fake_service):
    fake_service.result = False
    assert MattermostSendStep("x").run(settings, service_factory=lambda s: fake_service) is False

    with pytest.raises(AbortError):
        MattermostSendStep("x", fail_on_error=True).run(settings, service_factory=lambda s: fake_service)
