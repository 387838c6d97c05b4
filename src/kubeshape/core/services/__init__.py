"""Core services for kubeshape."""

from kubeshape.core.services.access_policy import (
    AccessPolicySynthesizer,
    ExternalServiceRegistration,
    NetworkPolicyRuleSet,
    synthesize,
)

__all__ = ["AccessPolicySynthesizer", "ExternalServiceRegistration", "NetworkPolicyRuleSet", "synthesize"]
