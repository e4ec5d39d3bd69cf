from datetime import timedelta
from pathlib import Path
import textwrap

import pytest
import yaml

from eksgitops.config.loader import DesiredConfigFile, load_repository_settings
from eksgitops.config.models import ClusterState
from eksgitops.errors import ConfigurationError


def _write(tmp_path: Path, text: str) -> Path:
    f = tmp_path / "cluster.yaml"
    f.write_text(textwrap.dedent(text))
    return f


def test_read_full_cluster_file(tmp_path: Path):
    f = _write(tmp_path, """
        timeout: 10m
        spec:
          state: present
          profiles:
            - https://github.com/weaveworks/eks-quickstart-app-dev
            - app-dev
          template:
            apiVersion: eksctl.io/v1alpha5
            kind: ClusterConfig
            metadata:
              name: demo
              region: eu-west-1
            nodeGroups:
              - name: ng-1
                desiredCapacity: 2
    """)
    spec = DesiredConfigFile(f).read()

    assert spec.state is ClusterState.PRESENT
    assert spec.cluster_name == "demo"
    assert spec.region == "eu-west-1"
    assert spec.timeout == timedelta(minutes=10)
    assert spec.profiles == ("https://github.com/weaveworks/eks-quickstart-app-dev", "app-dev")

    template = yaml.safe_load(spec.template_yaml())
    assert template["kind"] == "ClusterConfig"
    assert template["nodeGroups"][0]["desiredCapacity"] == 2


def test_defaults_when_optional_fields_missing(tmp_path: Path):
    f = _write(tmp_path, """
        spec:
          state: absent
          template:
            metadata:
              name: demo
    """)
    spec = DesiredConfigFile(f).read()
    assert spec.state is ClusterState.ABSENT
    assert spec.timeout == timedelta(minutes=25)
    assert spec.profiles == ()
    assert spec.region == ""


@pytest.mark.parametrize("state", ["", "maybe", "PRESENTISH"])
def test_unrecognised_state_is_unknown_not_absent(tmp_path: Path, state):
    f = _write(tmp_path, f"""
        spec:
          state: "{state}"
          template:
            metadata:
              name: demo
    """)
    assert DesiredConfigFile(f).read().state is ClusterState.UNKNOWN


def test_state_is_case_insensitive(tmp_path: Path):
    f = _write(tmp_path, """
        spec:
          state: Present
          template: {metadata: {name: demo}}
    """)
    assert DesiredConfigFile(f).read().state is ClusterState.PRESENT


def test_env_vars_are_expanded(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("CLUSTER_NAME", "from-env")
    f = _write(tmp_path, """
        spec:
          state: present
          template:
            metadata:
              name: ${CLUSTER_NAME}
    """)
    assert DesiredConfigFile(f).read().cluster_name == "from-env"


def test_missing_cluster_name_is_configuration_error(tmp_path: Path):
    f = _write(tmp_path, """
        spec:
          state: present
          template:
            metadata:
              region: eu-west-1
    """)
    with pytest.raises(ConfigurationError, match="metadata.name"):
        DesiredConfigFile(f).read()


def test_bad_timeout_is_configuration_error(tmp_path: Path):
    f = _write(tmp_path, """
        timeout: soon
        spec:
          state: present
          template: {metadata: {name: demo}}
    """)
    with pytest.raises(ConfigurationError, match="duration"):
        DesiredConfigFile(f).read()


def test_missing_file_is_configuration_error(tmp_path: Path):
    with pytest.raises(ConfigurationError):
        DesiredConfigFile(tmp_path / "nope.yaml").read()


def test_invalid_yaml_is_configuration_error(tmp_path: Path):
    f = _write(tmp_path, "spec: [unclosed\n")
    with pytest.raises(ConfigurationError):
        DesiredConfigFile(f).read()


def test_each_read_parses_the_file_again(tmp_path: Path):
    f = _write(tmp_path, """
        spec:
          state: present
          template: {metadata: {name: demo}}
    """)
    cfg = DesiredConfigFile(f)
    assert cfg.read().state is ClusterState.PRESENT

    f.write_text(f.read_text().replace("present", "absent"))
    assert cfg.read().state is ClusterState.ABSENT


# --------- repository settings ----------

def test_repository_settings_from_env():
    settings = load_repository_settings({"GH_TOKEN": "abc", "GITHUB_REPOSITORY": "acme/fleet"})
    assert settings.owner == "acme"
    assert settings.name == "fleet"
    assert settings.git_url == "git@github.com:acme/fleet"
    assert settings.git_email == "flux@noreply.gitops"
    assert settings.api_url == "https://api.github.com"
    assert "abc" not in repr(settings)


def test_repository_settings_accepts_github_token_and_overrides():
    settings = load_repository_settings({
        "GITHUB_TOKEN": "abc",
        "GITHUB_REPOSITORY": "acme/fleet",
        "GITHUB_API_URL": "https://ghe.example.test/api/v3/",
        "GITOPS_GIT_EMAIL": "bot@example.test",
    })
    assert settings.token == "abc"
    assert settings.api_url == "https://ghe.example.test/api/v3"
    assert settings.git_email == "bot@example.test"


@pytest.mark.parametrize(
    "env, message",
    [
        ({"GITHUB_REPOSITORY": "acme/fleet"}, "GH_TOKEN"),
        ({"GH_TOKEN": "abc"}, "GITHUB_REPOSITORY"),
        ({"GH_TOKEN": "abc", "GITHUB_REPOSITORY": "fleet"}, "owner/repo"),
        ({"GH_TOKEN": "abc", "GITHUB_REPOSITORY": "acme/"}, "owner/repo"),
        ({"GH_TOKEN": "abc", "GITHUB_REPOSITORY": "acme/fleet/extra"}, "owner/repo"),
    ],
)
def test_repository_settings_errors(env, message):
    with pytest.raises(ConfigurationError, match=message):
        load_repository_settings(env)
