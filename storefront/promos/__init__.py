from storefront.promos.model import PromoRule, RuleKind, RulesResult
from storefront.promos.service import PromoRuleEngine

__all__ = ["PromoRule", "PromoRuleEngine", "RuleKind", "RulesResult"]
