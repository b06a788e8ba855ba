"""
frontend/prompts.py
Fixed prompt templates. User-entered text is interpolated verbatim.
"""

from typing import Optional, Sequence

try:
    from frontend.records import ResourceOffer, ResourceRequest
except ModuleNotFoundError:
    from records import ResourceOffer, ResourceRequest


SUMMARY_INSTRUCTIONS = (
    "Summarize the following flood reports concisely, highlighting key affected areas, "
    "urgent needs, and any positive developments. Assume these are reports from various "
    "community members in Guwahati, Assam. Format the summary with bullet points for clarity"
)

SUMMARY_LANGUAGES = ("English", "Assamese", "Bengali", "Hindi")


def summary_prompt(reports: str, language: Optional[str] = None) -> str:
    if language:
        return f"{SUMMARY_INSTRUCTIONS}. Provide the summary in {language}.\n\n{reports}"
    return f"{SUMMARY_INSTRUCTIONS}:\n\n{reports}"


def _offer_line(offer: ResourceOffer) -> str:
    return (
        f"- Item: {offer.item}, Quantity: {offer.quantity}, "
        f"Location: {offer.location}, Availability: {offer.availability}"
    )


def _request_line(request: ResourceRequest) -> str:
    return (
        f"- Item: {request.item}, Quantity: {request.quantity}, "
        f"Location: {request.location}, Urgency: {request.urgency}"
    )


def match_offers_prompt(request: ResourceRequest, offers: Sequence[ResourceOffer]) -> str:
    """Ask for the 3 offers that best fit `request`."""
    listing = "\n".join(_offer_line(o) for o in offers) or "(no current offers)"
    return (
        f"I am requesting '{request.item}' with a quantity of {request.quantity} "
        f"at location '{request.location}'. Here are the current resource offers:\n\n"
        f"{listing}\n\n"
        "Which offers are most relevant to my request? Summarize the top 3 most relevant "
        "offers and explain why they are a good match. Please format the response clearly."
    )


def match_requests_prompt(offer: ResourceOffer, requests: Sequence[ResourceRequest]) -> str:
    """Ask for the 3 requests that `offer` best serves."""
    listing = "\n".join(_request_line(r) for r in requests) or "(no current requests)"
    return (
        f"I am offering '{offer.item}' with a quantity of {offer.quantity} "
        f"at location '{offer.location}'. Here are the current resource requests:\n\n"
        f"{listing}\n\n"
        "Which requests are most relevant to my offer? Summarize the top 3 most relevant "
        "requests and explain why they are a good match. Please format the response clearly."
    )
