"""Cloud capability used by the deployment orchestrators."""

from microdeck.cloud.base import Cloud
from microdeck.cloud.cpi_cloud import CPICloud

__all__ = ["CPICloud", "Cloud"]
