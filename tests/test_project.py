"""Tests for project loading and layer conventions."""

from pathlib import Path

import pytest
import yaml

from stitchkit.conventions import (
    biz_target,
    layer_path,
    plan_api_jobs,
    proto_path,
    store_target,
    to_lower_camel,
    to_upper_camel,
)
from stitchkit.driver import SchemaJob, SourceJob
from stitchkit.exceptions import ProjectError, ProjectValidationError
from stitchkit.models import Layer, ProjectConfig, WebFramework
from stitchkit.project import ProjectRegistry, find_web_server


def write_project(root: Path, data: dict) -> None:
    """Write a PROJECT file."""
    with (root / "PROJECT").open("w", encoding="utf-8") as f:
        yaml.dump(data, f)


class TestProjectRegistry:
    """Test PROJECT file loading."""

    def test_load(self, tmp_path: Path) -> None:
        """Test a complete project file."""
        write_project(
            tmp_path,
            {
                "apiVersion": "v1",
                "metadata": {"modulePath": "example.com/blog"},
                "webServers": [{"binaryName": "mb-apiserver", "webFramework": "grpc"}],
            },
        )
        project = ProjectRegistry(tmp_path).load()
        assert project.module_path == "example.com/blog"
        assert project.web_servers[0].web_framework is WebFramework.GRPC

    def test_module_path_from_go_mod(self, tmp_path: Path) -> None:
        """Test go.mod supplies a missing module path."""
        write_project(tmp_path, {"webServers": [{"binaryName": "mb-apiserver"}]})
        (tmp_path / "go.mod").write_text("module github.com/acme/blog\n\ngo 1.22\n", encoding="utf-8")
        assert ProjectRegistry(tmp_path).load().module_path == "github.com/acme/blog"

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test absent project files."""
        with pytest.raises(ProjectError, match="Project file not found"):
            ProjectRegistry(tmp_path).load()

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Test unparsable YAML."""
        (tmp_path / "PROJECT").write_text("webServers: [\n", encoding="utf-8")
        with pytest.raises(ProjectError, match="Failed to parse project YAML"):
            ProjectRegistry(tmp_path).load()

    def test_schema_violation(self, tmp_path: Path) -> None:
        """Test unknown frameworks fail schema validation."""
        write_project(tmp_path, {"webServers": [{"binaryName": "mb-apiserver", "webFramework": "echo"}]})
        with pytest.raises(ProjectValidationError, match="Schema validation failed"):
            ProjectRegistry(tmp_path).load()

    def test_model_violation_without_schema(self, tmp_path: Path) -> None:
        """Test pydantic still validates when schema checks are off."""
        write_project(tmp_path, {"apiVersion": "one"})
        with pytest.raises(ProjectValidationError, match="Project validation failed"):
            ProjectRegistry(tmp_path).load(validate=False)


class TestFindWebServer:
    """Test web server resolution."""

    @pytest.fixture
    def project(self) -> ProjectConfig:
        """Project with two servers."""
        return ProjectConfig.model_validate(
            {
                "webServers": [
                    {"binaryName": "mb-apiserver", "webFramework": "grpc"},
                    {"binaryName": "mb-gateway"},
                ],
            },
        )

    def test_by_binary_or_component(self, project: ProjectConfig) -> None:
        """Test both naming forms resolve."""
        assert find_web_server(project, "mb-gateway").name == "gateway"
        assert find_web_server(project, "apiserver").binary_name == "mb-apiserver"

    def test_ambiguous_without_name(self, project: ProjectConfig) -> None:
        """Test several servers need an explicit choice."""
        with pytest.raises(ProjectError, match="several web servers"):
            find_web_server(project)

    def test_single_server_default(self) -> None:
        """Test the only server is the default."""
        project = ProjectConfig.model_validate({"webServers": [{"binaryName": "mb-apiserver"}]})
        assert find_web_server(project).name == "apiserver"

    def test_unknown(self, project: ProjectConfig) -> None:
        """Test unknown names."""
        with pytest.raises(ProjectError, match="not found"):
            find_web_server(project, "mb-nope")


class TestConventions:
    """Test naming conventions and job planning."""

    @pytest.mark.parametrize(
        ("name", "upper", "lower"),
        [
            ("post", "Post", "post"),
            ("cron_job", "CronJob", "cronJob"),
            ("cron-job", "CronJob", "cronJob"),
            ("CronJob", "CronJob", "cronJob"),
        ],
    )
    def test_camel_case(self, name: str, upper: str, lower: str) -> None:
        """Test kind name conversions."""
        assert to_upper_camel(name) == upper
        assert to_lower_camel(name) == lower

    def test_store_target(self) -> None:
        """Test the store layer target."""
        target = store_target("cron_job")
        assert target.interface_name == "IStore"
        assert target.struct_name == "datastore"
        assert target.method_name == "CronJob"
        assert target.return_type == "CronJobStore"
        assert target.factory_expression == "newCronJobStore(store)"
        assert target.import_path is None

    def test_biz_target(self) -> None:
        """Test the biz layer target."""
        target = biz_target("cron_job", "v1", "example.com/blog", "apiserver")
        assert target.method_name == "CronJobV1"
        assert target.return_type == "cronjobv1.CronJobBiz"
        assert target.factory_expression == "cronjobv1.New(b.store)"
        assert target.receiver == "b"
        assert target.import_path == "example.com/blog/internal/apiserver/biz/v1/cronjob"
        assert target.import_alias == "cronjobv1"

    def test_paths(self) -> None:
        """Test layer and proto file locations."""
        root = Path("/src/blog")
        assert layer_path(root, "apiserver", Layer.STORE) == root / "internal/apiserver/store/store.go"
        assert layer_path(root, "apiserver", Layer.BIZ) == root / "internal/apiserver/biz/biz.go"
        assert proto_path(root, "apiserver", "v1") == root / "pkg/api/apiserver/v1/apiserver.proto"

    def test_plan_grpc(self) -> None:
        """Test gRPC servers get a proto job first for each kind."""
        project = ProjectConfig.model_validate(
            {
                "metadata": {"modulePath": "example.com/blog"},
                "webServers": [
                    {"binaryName": "mb-apiserver", "webFramework": "grpc", "grpcServiceName": "APIServer"},
                ],
            },
        )
        root = Path("/src/blog")
        jobs = plan_api_jobs(project, root, project.web_servers[0], ["post", "cron_job"])
        assert [type(job) for job in jobs] == [SchemaJob, SourceJob, SourceJob] * 2
        proto_job = jobs[3]
        assert isinstance(proto_job, SchemaJob)
        assert proto_job.kind == "CronJob"
        assert proto_job.service_name == "APIServer"
        assert proto_job.import_path == "apiserver/v1/cronjob.proto"

    def test_plan_gin_with_version_override(self) -> None:
        """Test gin servers only touch the Go layers."""
        project = ProjectConfig.model_validate(
            {
                "metadata": {"modulePath": "example.com/blog"},
                "webServers": [{"binaryName": "mb-apiserver"}],
            },
        )
        jobs = plan_api_jobs(project, Path("/r"), project.web_servers[0], ["post"], api_version="v2")
        assert all(isinstance(job, SourceJob) for job in jobs)
        assert jobs[1].target.method_name == "PostV2"

    def test_plan_needs_module_path(self) -> None:
        """Test planning without a module path fails."""
        project = ProjectConfig.model_validate({"webServers": [{"binaryName": "mb-apiserver"}]})
        with pytest.raises(ValueError, match="module path"):
            plan_api_jobs(project, Path("/r"), project.web_servers[0], ["post"])
