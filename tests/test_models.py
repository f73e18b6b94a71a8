"""Tests for project and deployment models."""

import pytest
from pydantic import ValidationError

from src.models import Deployment, DeploymentStatus, Project


class TestDeploymentStatus:
    """Tests for status parsing."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("building", DeploymentStatus.BUILDING),
            ("SUCCESS", DeploymentStatus.SUCCESS),
            (" failed ", DeploymentStatus.FAILED),
            ("rolling-back", DeploymentStatus.UNKNOWN),
        ],
    )
    def test_parse(self, raw, expected):
        """Test statuses are matched case-insensitively with an unknown fallback."""
        assert DeploymentStatus(raw) == expected

    def test_only_building_is_active(self):
        """Test building is the only active status."""
        active = [status for status in DeploymentStatus if status.is_active]
        assert active == [DeploymentStatus.BUILDING]


class TestDeployment:
    """Tests for the Deployment model."""

    def test_numeric_ids_become_strings(self):
        """Test integer primary keys are stored as strings."""
        deployment = Deployment.model_validate({"id": 12, "project_id": 7, "status": "queued"})

        assert deployment.id == "12"
        assert deployment.project_id == "7"

    def test_gorm_field_names(self):
        """Test capitalized ID and timestamp fields are accepted."""
        deployment = Deployment.model_validate(
            {"ID": 3, "CreatedAt": "2024-05-01T10:00:00Z", "status": "success"}
        )

        assert deployment.id == "3"
        assert deployment.created_at == "2024-05-01T10:00:00Z"

    def test_null_fields_default(self):
        """Test null logs and status are treated as empty and unknown."""
        deployment = Deployment.model_validate({"id": "d1", "status": None, "logs": None})

        assert deployment.logs == ""
        assert deployment.status == DeploymentStatus.UNKNOWN

    def test_unknown_fields_ignored(self):
        """Test extra fields from the server are dropped."""
        deployment = Deployment.model_validate({"id": "d1", "container_id": "abc"})
        assert not hasattr(deployment, "container_id")

    def test_missing_id_rejected(self):
        """Test a deployment without an id is invalid."""
        with pytest.raises(ValidationError):
            Deployment.model_validate({"status": "building"})

    def test_frozen(self):
        """Test snapshots cannot be mutated."""
        deployment = Deployment.model_validate({"id": "d1"})
        with pytest.raises(ValidationError):
            deployment.logs = "changed"


class TestProject:
    """Tests for the Project model."""

    def test_latest_deployment_is_first(self):
        """Test the newest deployment comes first."""
        project = Project.model_validate(
            {
                "id": 1,
                "deployments": [
                    {"id": "d2", "status": "building"},
                    {"id": "d1", "status": "success"},
                ],
            }
        )

        assert project.latest_deployment.id == "d2"
        assert project.status == DeploymentStatus.BUILDING

    def test_empty_project(self):
        """Test a project without deployments has no status."""
        project = Project.model_validate({"id": 1, "deployments": None, "env_vars": None})

        assert project.deployments == []
        assert project.env_vars == []
        assert project.latest_deployment is None
        assert project.status == DeploymentStatus.UNKNOWN

    def test_find_deployment(self):
        """Test deployments can be looked up by id."""
        project = Project.model_validate(
            {"id": 1, "deployments": [{"id": "d2"}, {"id": "d1"}]}
        )

        assert project.find_deployment("d1").id == "d1"
        assert project.find_deployment("missing") is None
        assert project.find_deployment(None) is None
