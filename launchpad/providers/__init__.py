"""Launchpad providers module.

One orchestrator per deployment target.

Key classes:
    NetlifyDeployer - Local build, site create/reuse, prebuilt-directory deploy
    RailwayDeployer - Single service, or backend + frontend with cross-wired URLs
    DeploymentError - Hard failure inside a flow; becomes the result's error
"""

from .base import Deployer, DeploymentError, non_blank
from .netlify import NetlifyDeployer, load_site_id, site_state_path
from .railway import TOPOLOGY_STEPS, RailwayDeployer, RailwayRun, is_full_stack

__all__ = [
    "Deployer",
    "DeploymentError",
    "non_blank",
    # Netlify
    "NetlifyDeployer",
    "load_site_id",
    "site_state_path",
    # Railway
    "RailwayDeployer",
    "RailwayRun",
    "TOPOLOGY_STEPS",
    "is_full_stack",
]
