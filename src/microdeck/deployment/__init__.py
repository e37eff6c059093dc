"""Deployment orchestration: provisioning and deletion."""

from microdeck.deployment.deleter import DeploymentDeleter
from microdeck.deployment.preparer import DeploymentPreparer
from microdeck.deployment.stemcell import StemcellReader

__all__ = ["DeploymentDeleter", "DeploymentPreparer", "StemcellReader"]
