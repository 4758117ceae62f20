"""Background jobs: engagement campaign rules, runner and scheduler."""

from engagement.tasks.campaign_runner import CampaignRunner, engagement_scope

__all__ = ["CampaignRunner", "engagement_scope"]
