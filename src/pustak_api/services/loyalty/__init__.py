"""Loyalty service exports."""

from .milestones import MilestoneDiscountEvaluator, MilestoneReward  # noqa: F401
