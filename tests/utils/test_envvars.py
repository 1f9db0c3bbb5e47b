from jenkins_mattermost.utils.envvars import expand


def test_expand_known_and_unknown_variables():
    env = {"BUILD_NUMBER": "12", "JOB_NAME": "team/app"}
    assert expand("$JOB_NAME #${BUILD_NUMBER} by $USER", env) == "team/app #12 by $USER"


def test_expand_empty():
    assert expand("", {"A": "1"}) == ""
    assert expand("no refs", {}) == "no refs"
