"""
BeamDAO Deployment Tooling

Provides:
  - deploy_token / deploy_beam_dao / deploy_migrator : contract deployment
  - set_dao_permissions  : governance bootstrap (ordered, abort on failure)
  - audit_roles          : privileged roles held by an account
  - Pipeline / Step      : ordered idempotent deployment steps
  - ExplorerVerifier     : Etherscan-compatible source verification
  - print_deployment_table / save_manifest : reporting
"""

from .pipeline import Pipeline, Step, StepResult
from .verify import ExplorerVerifier
from .tasks import (
    DAODeployment,
    audit_roles,
    deploy_beam_dao,
    deploy_migrator,
    deploy_token,
    grant_migrator_roles,
    set_dao_permissions,
)
from .report import print_deployment_table, save_manifest

__all__ = [
    # Pipeline
    "Pipeline",
    "Step",
    "StepResult",
    # Tasks
    "DAODeployment",
    "deploy_token",
    "deploy_beam_dao",
    "deploy_migrator",
    "grant_migrator_roles",
    "set_dao_permissions",
    "audit_roles",
    # Verification & reporting
    "ExplorerVerifier",
    "print_deployment_table",
    "save_manifest",
]
