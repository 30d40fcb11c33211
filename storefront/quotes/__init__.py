from storefront.quotes.model import Quote, QuoteRequest, QuoteSnapshot
from storefront.quotes.service import QuoteOrchestrator, calculate_order_total

__all__ = ["Quote", "QuoteOrchestrator", "QuoteRequest", "QuoteSnapshot", "calculate_order_total"]
