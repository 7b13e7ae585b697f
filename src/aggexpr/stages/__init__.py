"""Pipeline stage builders."""

from aggexpr.stages.projection import ProjectionOperation, ProjectionOperationBuilder, project

__all__ = ["ProjectionOperation", "ProjectionOperationBuilder", "project"]
