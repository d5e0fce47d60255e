"""Static first-aid content that works without the AI service."""

from __future__ import annotations

from typing import List, NamedTuple

MEDICAL_DISCLAIMER = (
    "This information is provided for informational purposes only and is not a "
    "medical diagnosis, professional medical advice, or a substitute for a "
    "consultation with a healthcare professional. Always seek the advice of your "
    "physician or other qualified health provider with any questions you may have "
    "regarding a medical condition."
)


class FirstAidTopic(NamedTuple):
    title: str
    steps: List[str]


FIRST_AID_GUIDE = (
    FirstAidTopic(
        "Burns",
        [
            "Run cool (not cold) water over the burn for 20 minutes.",
            "Remove jewelry or tight clothing before the area swells.",
            "Cover with a sterile non-stick bandage.",
            "Do NOT use butter, oils, or ice directly on the burn.",
        ],
    ),
    FirstAidTopic(
        "Cuts & Bleeding",
        [
            "Apply direct pressure with a clean cloth until bleeding stops.",
            "Clean the wound with mild soap and water.",
            "Apply an antibiotic ointment.",
            "Cover with a clean bandage. Seek help if the cut is deep.",
        ],
    ),
    FirstAidTopic(
        "Fever",
        [
            "Rest and drink plenty of fluids.",
            "Keep the room temperature comfortable.",
            "Use light clothing.",
            "Seek help if fever exceeds 103°F (39.4°C) or lasts over 3 days.",
        ],
    ),
    FirstAidTopic(
        "Dehydration",
        [
            "Sip small amounts of water or oral rehydration salts.",
            "Avoid caffeinated or sugary drinks.",
            "Seek shaded or cool areas.",
            "Look for dry mouth or decreased urination as key signs.",
        ],
    ),
    FirstAidTopic(
        "Snake Bite",
        [
            "Remain calm and move away from the snake's strike zone.",
            "Keep the bitten limb at or below heart level.",
            "Remove rings or constricting items.",
            "Seek EMERGENCY medical care immediately. Do NOT cut the wound or try to suck out venom.",
        ],
    ),
)


def first_aid_markdown() -> str:
    parts = []
    for topic in FIRST_AID_GUIDE:
        steps = "\n".join(f"{i}. {step}" for i, step in enumerate(topic.steps, start=1))
        parts.append(f"### {topic.title}\n{steps}")
    return "\n\n".join(parts)
