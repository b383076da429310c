"""
复制 API 的集成测试
通过 TestClient 调用 FastAPI 路由，验证响应结构和 HTTP 状态码
"""

import errno
import json
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from config_copier.api.api import APICore, ERROR_STATUS_CODES, status_for_error
from config_copier.api.fastapi_adapter import create_fastapi_app
from config_copier.claude.models import CopyErrorKind
from config_copier.config import AppConfig

AGENT_CONTENT = "---\nname: reviewer\n---\nReview code\n"


@pytest.fixture
def client(copy_service, project_registry, temp_user_home):
    api_core = APICore(copy_service, project_registry)
    app = create_fastapi_app(api_core, AppConfig(user_home=temp_user_home))
    return TestClient(app)


@pytest.fixture
def source_agent(temp_source_dir, write_file):
    return write_file(temp_source_dir / "agents" / "reviewer.md", AGENT_CONTENT)


class TestErrorStatusCodes:
    """测试错误分类到 HTTP 状态码的映射"""

    def test_every_kind_mapped(self):
        assert set(ERROR_STATUS_CODES) == set(CopyErrorKind)

    @pytest.mark.parametrize(
        "kind, status",
        [
            (CopyErrorKind.invalid_input, 400),
            (CopyErrorKind.path_traversal, 400),
            (CopyErrorKind.security_violation, 400),
            (CopyErrorKind.not_found, 404),
            (CopyErrorKind.permission_denied, 403),
            (CopyErrorKind.insufficient_storage, 507),
            (CopyErrorKind.conflict, 409),
            (CopyErrorKind.invalid_state, 500),
            (CopyErrorKind.internal_error, 500),
            (None, 500),
        ],
    )
    def test_status_for_error(self, kind, status):
        assert status_for_error(kind) == status


class TestCopyAgentApi:
    """测试 POST /api/copy_agent"""

    def test_success(self, client, source_agent, temp_user_home):
        response = client.post(
            "/api/copy_agent",
            json={"sourcePath": str(source_agent), "targetScope": "user"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["code"] == 0
        assert body["success"] is True
        assert body["data"]["copiedPath"] == str(temp_user_home / ".claude" / "agents" / "reviewer.md")
        assert body["data"]["message"] == "Agent copied successfully"

    def test_conflict_defaults_to_skip(self, client, source_agent, temp_user_home, write_file):
        """测试未指定策略时按 skip 处理，返回 200 和 skipped"""
        write_file(temp_user_home / ".claude" / "agents" / "reviewer.md", "old")

        response = client.post(
            "/api/copy_agent",
            json={"sourcePath": str(source_agent), "targetScope": "user"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["data"]["skipped"] is True
        assert body["data"]["message"] == "Copy cancelled by user"

    def test_rename(self, client, source_agent, temp_user_home, write_file):
        write_file(temp_user_home / ".claude" / "agents" / "reviewer.md", "old")

        response = client.post(
            "/api/copy_agent",
            json={
                "sourcePath": str(source_agent),
                "targetScope": "user",
                "conflictStrategy": "rename",
            },
        )

        assert response.status_code == 200
        assert response.json()["data"]["copiedPath"].endswith("reviewer-2.md")

    def test_path_traversal_returns_400(self, client):
        response = client.post(
            "/api/copy_agent",
            json={"sourcePath": "/home/user/../../etc/passwd", "targetScope": "user"},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == 400
        assert "Path traversal" in body["error"]
        assert body["data"]["errorKind"] == "path_traversal"

    def test_source_not_found_returns_404(self, client, temp_source_dir):
        response = client.post(
            "/api/copy_agent",
            json={"sourcePath": str(temp_source_dir / "missing.md"), "targetScope": "user"},
        )

        assert response.status_code == 404
        assert response.json()["data"]["errorCode"] == "ENOENT"

    def test_unknown_project_returns_404(self, client, source_agent):
        response = client.post(
            "/api/copy_agent",
            json={
                "sourcePath": str(source_agent),
                "targetScope": "project",
                "targetProjectId": "nope",
            },
        )

        assert response.status_code == 404
        assert "Project not found" in response.json()["error"]

    def test_disk_full_returns_507(self, client, source_agent):
        with patch(
            "config_copier.claude.copy_service.copy_file",
            side_effect=OSError(errno.ENOSPC, "No space left on device"),
        ):
            response = client.post(
                "/api/copy_agent",
                json={"sourcePath": str(source_agent), "targetScope": "user"},
            )

        assert response.status_code == 507

    def test_unexpected_error_returns_500(self, client, source_agent):
        with patch(
            "config_copier.claude.copy_service.CopyService.copy_agent",
            side_effect=RuntimeError("boom"),
        ):
            response = client.post(
                "/api/copy_agent",
                json={"sourcePath": str(source_agent), "targetScope": "user"},
            )

        assert response.status_code == 500
        assert response.json() == {"code": 500, "success": False, "error": "boom"}

    def test_same_location_returns_400(self, client, temp_user_home, write_file):
        source = write_file(temp_user_home / ".claude" / "agents" / "reviewer.md", AGENT_CONTENT)

        response = client.post(
            "/api/copy_agent",
            json={"sourcePath": str(source), "targetScope": "user"},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Cannot copy configuration to the same location (User Global to User Global)"
        assert body["data"]["errorKind"] == "invalid_input"


class TestRequestValidation:
    """测试请求体校验返回 400"""

    @pytest.mark.parametrize(
        "path, payload, message",
        [
            ("/api/copy_agent", {"targetScope": "user"}, "sourcePath is required and must be a string"),
            ("/api/copy_command", {"sourcePath": "/a.md", "targetScope": "global"}, 'targetScope is required and must be "user" or "project"'),
            ("/api/copy_agent", {"sourcePath": "/a.md", "targetScope": "project"}, 'targetProjectId is required when targetScope is "project"'),
            ("/api/copy_agent", {"sourcePath": "/a.md", "targetScope": "project", "targetProjectId": "  "}, "targetProjectId must not be empty"),
            ("/api/copy_agent", {"sourcePath": "/a.md", "targetScope": "user", "conflictStrategy": "merge"}, 'conflictStrategy must be "skip", "overwrite", or "rename"'),
            ("/api/copy_mcp", {"sourceServerName": "s", "sourceMcpConfig": {"command": "x"}, "targetScope": "user", "conflictStrategy": "rename"}, 'conflictStrategy must be "skip" or "overwrite"'),
            ("/api/copy_mcp", {"sourceMcpConfig": {"command": "x"}, "targetScope": "user"}, "sourceServerName is required and must be a string"),
            ("/api/copy_mcp", {"sourceServerName": "s", "sourceMcpConfig": "x", "targetScope": "user"}, "sourceMcpConfig is required and must be an object"),
            ("/api/copy_hook", {"targetScope": "user"}, "sourceHook is required and must be an object"),
            ("/api/copy_hook", {"sourceHook": {"command": "x"}, "targetScope": "user"}, "sourceHook.event is required and must be a string"),
            ("/api/copy_hook", {"sourceHook": {"event": "Stop"}, "targetScope": "user"}, "sourceHook.command is required and must be a string"),
            ("/api/copy_skill", {"targetScope": "user"}, "sourceSkillPath is required and must be a string"),
        ],
    )
    def test_validation_messages(self, client, path, payload, message):
        response = client.post(path, json=payload)

        assert response.status_code == 400
        assert response.json() == {"code": 400, "success": False, "error": message}


class TestCopyHookApi:
    """测试 POST /api/copy_hook"""

    def test_success(self, client, temp_project_dir, project_id):
        response = client.post(
            "/api/copy_hook",
            json={
                "sourceHook": {"event": "PreToolUse", "matcher": "Bash", "command": "audit.sh", "timeout": 10},
                "targetScope": "project",
                "targetProjectId": project_id,
            },
        )

        settings_path = temp_project_dir / ".claude" / "settings.json"
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["mergedInto"] == str(settings_path)
        assert data["hook"] == {"event": "PreToolUse", "matcher": "Bash", "command": "audit.sh", "timeout": 10}
        assert data["message"] == "Hook copied successfully"
        stored = json.loads(settings_path.read_text(encoding="utf-8"))
        assert stored["hooks"]["PreToolUse"][0]["hooks"][0]["timeout"] == 10


class TestCopyMcpApi:
    """测试 POST /api/copy_mcp"""

    def test_success_without_mcp_file(self, client, temp_project_dir, project_id):
        response = client.post(
            "/api/copy_mcp",
            json={
                "sourceServerName": "github",
                "sourceMcpConfig": {"command": "npx", "args": ["server-github"]},
                "targetScope": "project",
                "targetProjectId": project_id,
            },
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["serverName"] == "github"
        assert data["mergedInto"] == str(temp_project_dir / ".claude" / "settings.json")
        assert data["message"] == "MCP server copied successfully"

    def test_existing_server_skipped_by_default(self, client, temp_project_dir, project_id, write_file):
        write_file(temp_project_dir / ".mcp.json", json.dumps({"mcpServers": {"github": {"command": "old"}}}))

        response = client.post(
            "/api/copy_mcp",
            json={
                "sourceServerName": "github",
                "sourceMcpConfig": {"command": "npx"},
                "targetScope": "project",
                "targetProjectId": project_id,
            },
        )

        assert response.status_code == 200
        assert response.json()["data"]["skipped"] is True

    def test_missing_command_returns_400(self, client):
        response = client.post(
            "/api/copy_mcp",
            json={"sourceServerName": "s", "sourceMcpConfig": {"args": []}, "targetScope": "user"},
        )

        assert response.status_code == 400
        assert "command is required" in response.json()["error"]


class TestCopySkillApi:
    """测试 POST /api/copy_skill"""

    def test_warnings_return_422(self, client, temp_source_dir, write_file):
        skill_dir = temp_source_dir / "pdf"
        write_file(skill_dir / "SKILL.md", "---\nname: pdf\n---\nLoad /etc/pdf/fonts.conf\n")

        response = client.post(
            "/api/copy_skill",
            json={"sourceSkillPath": str(skill_dir), "targetScope": "user"},
        )

        assert response.status_code == 422
        data = response.json()["data"]
        assert data["requiresAcknowledgement"] is True
        assert data["warnings"]["externalReferences"][0] == {
            "type": "absolute",
            "path": "/etc/pdf/fonts.conf",
            "line": 4,
            "severity": "error",
            "file": "SKILL.md",
        }

    def test_acknowledged_copy(self, client, temp_source_dir, write_file, temp_user_home):
        skill_dir = temp_source_dir / "pdf"
        write_file(skill_dir / "SKILL.md", "---\nname: pdf\n---\nLoad /etc/pdf/fonts.conf\n")

        response = client.post(
            "/api/copy_skill",
            json={
                "sourceSkillPath": str(skill_dir),
                "targetScope": "user",
                "acknowledgedWarnings": True,
            },
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["copiedPath"] == str(temp_user_home / ".claude" / "skills" / "pdf")
        assert data["fileCount"] == 1
        assert data["dirCount"] == 0
        assert data["message"] == "Skill copied successfully"


class TestListProjectsApi:
    """测试 POST /api/list_projects"""

    def test_list_projects(self, client, temp_project_dir, project_id):
        response = client.post("/api/list_projects", json={})

        assert response.status_code == 200
        projects = response.json()["data"]["projects"]
        by_id = {p["id"]: p for p in projects}
        assert by_id[project_id]["path"] == str(temp_project_dir)
        assert by_id[project_id]["exists"] is True
