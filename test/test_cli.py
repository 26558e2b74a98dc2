import pytest
import typer
from typer.testing import CliRunner

from portfolio_admin import __version__
from portfolio_admin.cli import app as cli_app
from portfolio_admin.cli.app import app, parse_assignments

runner = CliRunner()


class FakeMailRelay:
    instances: list["FakeMailRelay"] = []

    def __init__(self, timeout: int = 30):
        self.sent = []
        self.closed = False
        FakeMailRelay.instances.append(self)

    async def send(self, service_id, template_id, public_key, params):
        self.sent.append((service_id, template_id, public_key, params))

    async def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def isolated_cli(tmp_path, monkeypatch, store):
    monkeypatch.setattr(cli_app, "CONFIG_DIR", tmp_path)
    monkeypatch.setattr(cli_app, "CONFIG_FILE", tmp_path / "config.ini")
    monkeypatch.setattr(cli_app, "StoreClient", lambda *args, **kwargs: store)
    for name in (
        "PORTFOLIO_STORE_URL",
        "PORTFOLIO_STORE_KEY",
        "PORTFOLIO_MAIL_SERVICE_ID",
        "PORTFOLIO_MAIL_TEMPLATE_ID",
        "PORTFOLIO_MAIL_PUBLIC_KEY",
        "PORTFOLIO_REQUEST_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setenv("PORTFOLIO_STORE_URL", "https://demo.supabase.co")
    monkeypatch.setenv("PORTFOLIO_STORE_KEY", "anon-key")


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_init_then_validate(tmp_path):
    result = runner.invoke(
        app, ["init", "https://demo.supabase.co/", "anon-key", "--mail-service-id", "svc"]
    )
    assert result.exit_code == 0, result.output
    assert (tmp_path / "config.ini").is_file()

    result = runner.invoke(app, ["validate"])
    assert result.exit_code == 0, result.output
    assert "https://demo.supabase.co" in result.output


def test_show_config_hides_store_key(tmp_path):
    runner.invoke(app, ["init", "https://demo.supabase.co", "very-secret-key"])

    result = runner.invoke(app, ["--show-config"])

    assert result.exit_code == 0
    assert "very-secret-key" not in result.output
    assert "[hidden]" in result.output


def test_commands_without_configuration_fail_cleanly():
    result = runner.invoke(app, ["list", "projects"])

    assert result.exit_code == 1
    assert "ConfigurationError" in result.output


@pytest.mark.usefixtures("configured")
def test_create_and_list_project(store):
    result = runner.invoke(
        app,
        [
            "create",
            "projects",
            "-s",
            "title=Orbit",
            "-s",
            "description=A satellite tracker",
            "-s",
            "technologies=Python, aiohttp",
            "--set",
            "featured=true",
        ],
    )
    assert result.exit_code == 0, result.output
    assert "created #1" in result.output
    assert store.rows("projects")[1]["technologies"] == ["Python", "aiohttp"]

    result = runner.invoke(app, ["list", "projects"])
    assert result.exit_code == 0, result.output
    assert "Orbit" in result.output
    assert store.closed


@pytest.mark.usefixtures("configured")
def test_create_with_invalid_fields_shows_field_errors(store):
    result = runner.invoke(
        app, ["create", "skills", "-s", "name=Rust", "-s", "level=150"]
    )

    assert result.exit_code == 1
    assert "category" in result.output
    assert "level" in result.output
    assert store.calls == []


@pytest.mark.usefixtures("configured")
def test_update_of_missing_record_reports_store_error():
    result = runner.invoke(app, ["update", "skills", "5", "-s", "level=50"])

    assert result.exit_code == 1
    assert "StoreError" in result.output


@pytest.mark.usefixtures("configured")
def test_delete_with_force(store):
    store.rows("social_links")[4] = {
        "id": 4,
        "name": "GitHub",
        "url": "https://github.com/me",
        "icon": "github",
    }

    result = runner.invoke(app, ["delete", "social-links", "4", "--force"])

    assert result.exit_code == 0, result.output
    assert store.rows("social_links") == {}


@pytest.mark.usefixtures("configured")
def test_delete_can_be_cancelled(store):
    result = runner.invoke(app, ["delete", "projects", "1"], input="n\n")

    assert result.exit_code == 1
    assert store.calls == []


@pytest.mark.usefixtures("configured")
def test_settings_are_saved_and_listed(store):
    result = runner.invoke(app, ["settings", "--theme", "light"])
    assert result.exit_code == 0, result.output
    assert store.rows("settings")[1]["theme"] == "light"

    result = runner.invoke(app, ["list", "settings"])
    assert result.exit_code == 0, result.output
    assert "light" in result.output


@pytest.mark.usefixtures("configured")
def test_settings_reject_unknown_theme(store):
    result = runner.invoke(app, ["settings", "--theme", "sepia"])

    assert result.exit_code == 1
    assert "theme" in result.output
    assert store.count("update") == 0


def test_unknown_kind_is_a_usage_error():
    result = runner.invoke(app, ["list", "blog-posts"])

    assert result.exit_code == 2


@pytest.mark.usefixtures("configured")
def test_overview_counts_every_kind(store):
    store.rows("skills")[1] = {"id": 1, "name": "Go", "category": "Backend", "level": 70}
    store.rows("contact_info")[2] = {
        "id": 2,
        "title": "Email",
        "value": "me@example.com",
        "icon": "mail",
    }

    result = runner.invoke(app, ["overview"])

    assert result.exit_code == 0, result.output
    assert "Skills" in result.output
    assert "me@example.com" in result.output
    assert store.count("select", "skills") == 1


@pytest.mark.usefixtures("configured")
def test_send_message(monkeypatch, tmp_path):
    FakeMailRelay.instances.clear()
    monkeypatch.setattr(cli_app, "MailRelayClient", FakeMailRelay)
    monkeypatch.setenv("PORTFOLIO_MAIL_SERVICE_ID", "svc")
    monkeypatch.setenv("PORTFOLIO_MAIL_TEMPLATE_ID", "tpl")
    monkeypatch.setenv("PORTFOLIO_MAIL_PUBLIC_KEY", "pub")
    args = [
        "send-message",
        "--name",
        "Ada",
        "--email",
        "ada@example.com",
        "--subject",
        "Hello",
        "--message",
        "Let's build something together.",
    ]

    result = runner.invoke(app, args)
    assert result.exit_code == 0, result.output
    relay = FakeMailRelay.instances[0]
    assert relay.sent[0][:3] == ("svc", "tpl", "pub")
    assert relay.closed
    assert (tmp_path / "contact_state.json").is_file()

    result = runner.invoke(app, args)
    assert result.exit_code == 1
    assert "CooldownError" in result.output


def test_parse_assignments():
    assert parse_assignments(["title=A=B", "icon-name= x "]) == {
        "title": "A=B",
        "icon_name": " x ",
    }
    with pytest.raises(typer.BadParameter):
        parse_assignments(["featured"])


class PingOnlyClient:
    reachable = True

    def __init__(self, *args, **kwargs):
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return None

    async def ping(self):
        return self.reachable


@pytest.mark.usefixtures("configured")
@pytest.mark.parametrize("reachable, exit_code", [(True, 0), (False, 1)])
def test_diagnose(monkeypatch, reachable, exit_code):
    monkeypatch.setattr(PingOnlyClient, "reachable", reachable)
    monkeypatch.setattr(cli_app, "StoreClient", PingOnlyClient)

    result = runner.invoke(app, ["diagnose"])

    assert result.exit_code == exit_code, result.output
    assert "Configuration is valid" in result.output


@pytest.mark.usefixtures("configured")
def test_list_skills_by_category(store):
    store.rows("skills").update(
        {
            1: {"id": 1, "name": "Python", "category": "Backend", "level": 90},
            2: {"id": 2, "name": "React", "category": "Frontend", "level": 80},
        }
    )

    result = runner.invoke(app, ["list", "skills", "--category", "frontend"])

    assert result.exit_code == 0, result.output
    assert "React" in result.output
    assert "Python" not in result.output


def test_category_filter_only_applies_to_skills():
    result = runner.invoke(app, ["list", "projects", "--category", "backend"])

    assert result.exit_code == 2
