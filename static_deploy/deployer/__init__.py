"""Deploy run orchestration."""

from static_deploy.deployer.deployer import (
    DeployReport,
    FileOutcome,
    deploy_file,
    run_deploy,
)

__all__ = ["DeployReport", "FileOutcome", "deploy_file", "run_deploy"]
