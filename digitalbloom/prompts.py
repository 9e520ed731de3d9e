"""
Prompt templates for the two text-generation tasks.

The site prompt is the contract the placeholder resolver depends on: images
must come back as `src="[AI_IMAGE_PROMPT: ...]"` with sequential
`id="ai-image-<n>"` identifiers, or they will not be generated or editable.
"""

import re
from typing import Any, Dict

from .schemas import ProfileDraft

IMAGE_PROMPT_SENTINEL = "AI_IMAGE_PROMPT"
IMAGE_ID_PREFIX = "ai-image-"

# Gemini REST responseSchema dialect (OpenAPI subset, upper-case types)
SUGGESTION_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "businessDescription": {
            "type": "STRING",
            "description": "A compelling 1-2 sentence description of the business.",
        },
        "targetAudience": {
            "type": "STRING",
            "description": "A description of the ideal customer or target market.",
        },
        "services": {
            "type": "STRING",
            "description": "A comma-separated list of 3-5 key services or products offered.",
        },
    },
    "required": ["businessDescription", "targetAudience", "services"],
}

SITE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "html": {
            "type": "STRING",
            "description": (
                "The complete HTML structure for the website as a single string, including a hero, "
                "about, services, and contact section. Use AI Image Prompts in the format "
                f'`src="[{IMAGE_PROMPT_SENTINEL}: descriptive prompt]"` for all images.'
            ),
        },
        "css": {
            "type": "STRING",
            "description": (
                "All the CSS code to be placed in a <style> tag, as a single string. "
                "It must be modern, responsive, and visually appealing."
            ),
        },
        "js": {
            "type": "STRING",
            "description": (
                "All the JavaScript code for interactivity (like mobile menu, smooth scroll) "
                "to be placed in a <script> tag, as a single string."
            ),
        },
    },
    "required": ["html", "css", "js"],
}


SUGGESTION_PROMPT_TEMPLATE = """You are an expert business consultant and marketing copywriter.
Based on the provided business name and type, generate concise and professional suggestions for the business description, target audience, and key services.

Business Name: "{name}"
Business Type: "{type}"

Provide a compelling 1-2 sentence description.
Describe the specific target audience.
List 3-5 key services or products as a comma-separated string.

Return the response as a single JSON object matching the required schema.
"""


SITE_PROMPT_TEMPLATE = """You are an elite full-stack web developer and a world-class UI/UX designer. Your mission is to generate a complete, single-file, professional, and visually stunning website that is **highly tailored** to the business details provided. The result should look like a high-end, custom-designed website.

**Business Details:**
- **Name:** {name}
- **Type:** {type}
- **Description:** {description}
- **Target Audience:** {target_audience}
- **Key Services/Products:** {services}
- **Desired Tone/Style:** {style}
- **Color Scheme Preference:** {color_scheme}

**CRITICAL REQUIREMENTS:**

1.  **Content Specificity:**
    - The website's text (headings, paragraphs, CTAs) must be **deeply personalized** based on the business details. Do not use generic placeholder text.
    - Act as a professional copywriter. Weave the business name, services, and target audience into compelling marketing copy throughout the site.

2.  **AI-Generated Imagery (VERY IMPORTANT):**
    - You **MUST** generate descriptive prompts for AI image generation and place them inside the 'src' attribute of image tags using a specific placeholder format.
    - The format is: `src="[{sentinel}: Your descriptive image prompt here]"`.
    - The image prompt inside the placeholder **MUST** be highly descriptive and directly relevant to the business section (e.g., hero, about, services).
    - **Example:** For a 'Tech Startup' hero image, a valid placeholder would be `<img src="[{sentinel}: a vibrant, abstract visualization of neural networks and data streams, in shades of blue and purple]" alt="AI Solutions">`.
    - **DO NOT** use any other image URLs or sources. Every `<img>` tag must use this placeholder format in its `src` attribute. Create at least 3 distinct images for different sections.
    - Additionally, you **MUST** add a unique ID to each of these image tags, in the format `id="{id_prefix}0"`, `id="{id_prefix}1"`, etc. This allows the user to replace them later.

3.  **No Maps:**
    - The "Contact Us" section **MUST NOT** include an embedded map or a physical address.
    - It should contain a functional contact form (with fields for Name, Email, Message) and placeholder contact details like `(123) 456-7890` and `{contact_email}`.

4.  **Structure & Code:**
    - Generate a single HTML file's content.
    - All CSS must be inside a `<style>` tag in the `<head>`. The design must be modern, fully responsive (mobile, tablet, desktop), and adhere to the requested style and color scheme. Use modern CSS like Flexbox and Grid. Pay attention to typography, spacing, and visual hierarchy.
    - All JavaScript for interactivity (e.g., mobile menu, smooth scrolling) must be inside a `<script>` tag before the closing `</body>` tag.
    - The website must include: Navigation Bar, Hero Section (with a strong call-to-action), About Us, Services/Products, Contact Form, and Footer.

5.  **Final Output:**
    - The output must be a single, clean JSON object matching the provided schema.
    - Ensure there are no markdown backticks (```) within the JSON string values.
"""


def contact_email(business_name: str) -> str:
    """Placeholder address shown in the contact section, e.g. contact@bloomcafe.com."""
    handle = re.sub(r"\s+", "", business_name.lower())
    return f"contact@{handle}.com"


def build_suggestion_prompt(name: str, business_type: str) -> str:
    return SUGGESTION_PROMPT_TEMPLATE.format(name=name, type=business_type)


def build_site_prompt(profile: ProfileDraft) -> str:
    return SITE_PROMPT_TEMPLATE.format(
        name=profile.name,
        type=profile.type,
        description=profile.description,
        target_audience=profile.target_audience,
        services=profile.services,
        style=profile.style,
        color_scheme=profile.color_scheme,
        sentinel=IMAGE_PROMPT_SENTINEL,
        id_prefix=IMAGE_ID_PREFIX,
        contact_email=contact_email(profile.name),
    )
