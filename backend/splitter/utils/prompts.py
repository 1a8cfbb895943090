"""Prompt templates for receipt extraction and correction.

Keeping prompts in a central location makes it easier to iterate on
their content and ensure consistency between the first extraction
attempt, the retries and the correction step.
"""

from __future__ import annotations

import json
from textwrap import dedent
from typing import Any, Dict, Iterable

RETRY_EMPHASIS = (
    "IMPORTANT: Previous attempt had calculation errors. Please ensure all numbers add up "
    "correctly. The sum of item prices MUST equal the subtotal, and subtotal + tax + other "
    "fees MUST equal the total."
)

CORRECTION_SYSTEM_PROMPT = (
    "You are a receipt analysis expert. Your task is to correct discrepancies in receipt data."
)


def get_default_extraction_prompt(retry: bool = False) -> str:
    """Return the prompt sent with the receipt image.

    When ``retry`` is true the prompt opens with an explicit statement
    that the previous answer did not add up.
    """
    prompt = dedent(
        """
        Analyze this receipt and provide the following details as a single JSON object:
        1. Store name (merchantName)
        2. List of items purchased with their prices (items: [{name, price}])
        3. Subtotal, tax, and total amounts (subtotal, tax, total)
        4. Any additional fees like tips, service charges, healthcare surcharges, etc.
           in an array called 'otherFees' where each fee has a 'name' and 'amount'
           property. Do not create separate fields for these fees.

        Format numbers as actual numbers, not strings. Ensure that the sum of item
        prices equals the subtotal, and that subtotal + tax + other fees equals the
        total. Return only the JSON object.
        """
    ).strip()
    if retry:
        return f"{RETRY_EMPHASIS}\n\n{prompt}"
    return prompt


def get_correction_prompt(payload: Dict[str, Any], discrepancies: Iterable[str]) -> str:
    """Return the prompt asking the model to repair inconsistent data."""
    messages = "\n".join(discrepancies)
    data = json.dumps(payload, indent=2)
    return (
        "I've analyzed a receipt and found some discrepancies:\n\n"
        f"{messages}\n\n"
        "Here's the current parsed data:\n"
        f"{data}\n\n"
        "Please correct the data to resolve these discrepancies. Focus on:\n"
        "1. Checking if any items are missing or have incorrect prices\n"
        "2. Verifying if there are additional fees not captured\n"
        "3. Ensuring the subtotal is the sum of all item prices\n"
        "4. Ensuring the total equals subtotal + tax + other fees\n\n"
        "Return only the corrected JSON object."
    )
