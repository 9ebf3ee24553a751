"""Prompt templates and assistant personas for the studio tools."""

from __future__ import annotations

from string import Template

from studio.models import Persona

# --- Text engine ---

TEXT_SYSTEM_INSTRUCTION = "You are an expert content creator specializing in tech and creative industries."

PLATFORM_INSTRUCTIONS: dict[str, str] = {
    "Blog Post": (
        "Write a comprehensive blog post with proper headings, paragraphs, and a conclusion. "
        "Include SEO-optimized content."
    ),
    "Facebook": (
        "Write an engaging Facebook post. Use emojis where appropriate and include a call-to-action. "
        "Keep it conversational and shareable."
    ),
    "Instagram": (
        "Write an Instagram caption. Use relevant hashtags (5-10) and emojis. "
        "Keep the tone visual and engaging."
    ),
    "LinkedIn": (
        "Write a professional LinkedIn post. Use a business tone, include insights, "
        "and end with a thought-provoking question or call-to-action."
    ),
}

DEFAULT_TOPIC = "The impact of Web3 on digital art"
DEFAULT_CONTINUATION_TOPIC = "Web3 and Digital Ownership"
DEFAULT_AUDIENCE = "Creative Professionals"
DEFAULT_TONE = "Professional"
DEFAULT_LANGUAGE = "Deutsch"

TONES = ["Professional", "Casual", "Funny", "Inspirational"]
LANGUAGES = ["Deutsch", "English", "Français", "Español", "Italiano", "Português", "Türkçe"]

TEXT_PROMPT = Template(
    '$instruction\n\nTopic: "$topic"\nTarget Audience: $audience\nTone: $tone\n\n'
    "${trends}IMPORTANT: Output ONLY the $platform content. "
    'Do not include any introductions like "Here is..." or explanations. '
    "Start directly with the content. IMPORTANT: Write the entire output in $language."
)

TRENDS_BLOCK = Template(
    "IMPORTANT: Today is $today. Use Google Search to research the LATEST and most CURRENT "
    "information, news, and data about this topic from 2025 and 2026. Prioritize recent "
    "developments over older information. Mention specific recent events, statistics, "
    "or announcements from the past few months.\n\n"
)

CONTINUATION_PROMPT = Template(
    "Continue the following text, keeping the same style and context. "
    'The text is for a $platform post about "$topic". \n\nExisting text:\n$content\n\n'
    "IMPORTANT: Only output the continuation text. Do not include any introductions, "
    "explanations, or meta-commentary. IMPORTANT: Write the entire output in $language."
)

# --- Video studio ---

CAMERA_MOTIONS = ["Pan", "Zoom", "Tilt", "Roll", "Static", "Orbit"]
VIDEO_DURATIONS = ["2s", "4s", "8s"]
VIDEO_ASPECT_RATIOS = ["16:9", "9:16"]

# --- Thumbnail engine ---

THUMBNAIL_TEXT_IDEA = Template(
    "Write a very short, catchy, 2-3 word thumbnail text overlay for a video about: "
    '"$topic". RETURN ONLY THE TEXT. No quotes.'
)
THUMBNAIL_BACKGROUND_IDEA = Template(
    'Describe a visually striking background for a youtube thumbnail about: "$topic". '
    "Keep it concise, visual, and descriptive (no text description)."
)
THUMBNAIL_ELEMENT_IDEA = Template(
    'Describe a main subject/character/element for a youtube thumbnail about: "$topic". '
    "Keep it concise (no text description)."
)

THUMBNAIL_TEXT_STYLES = ["Bold & Modern", "Neon & Glowing", "Handwritten / Marker", "3D Metallic", "Minimalist"]

# --- Sketch studio ---

SKETCH_PROMPT = Template(
    "You are an expert digital artist.\n"
    "Transform the attached sketch into a high-quality, fully rendered image.\n\n"
    "Subject Context: $context\n"
    "Artistic Style: $style\n\n"
    "Key Requirements:\n"
    "- Cinematic lighting and composition.\n"
    "- High resolution and detailed textures.\n"
    "- Strictly follow the structure and composition of the sketch.\n"
    "- $additional\n\n"
    "Output the image only."
)

SKETCH_EDIT_PROMPT = Template(
    "Edit this image.\n"
    "Instruction: $instruction\n"
    "Maintain the original style and composition unless instructed otherwise.\n"
    "Ensure the result is cinematic and high quality."
)

# --- Chat bot ---

CHAT_GREETING = Template("Hello! I'm your $name. How can I assist with your creative process today?")
CHAT_SWITCH = Template("System: Switched to $name mode.\n$desc")
CHAT_ERROR = "I'm having trouble connecting right now. Please check your internet or API key."

ONBOARDING_RAG_PROMPT = Template(
    "Beantworte die folgende Frage basierend auf dem Pixelschickeria-Firmenwissen. "
    "Antworte auf Deutsch, freundlich und präzise. "
    "Falls die Antwort nicht im Kontext steht, sag das ehrlich.\n\n"
    "--- FIRMENWISSEN ---\n$context\n--- ENDE ---\n\nFrage: $question"
)

PERSONAS: list[Persona] = [
    Persona(
        id="analysis",
        name="Medien-Analyst",
        icon="palette",
        desc="Helps with brainstorming and art direction.",
        instruction=(
            "You are a highly creative art director and brainstorming partner. Your goal is to "
            "inspire, generate vivid ideas, and help refine artistic concepts for videos, images, "
            "and designs. Keep responses enthusiastic and visual."
        ),
    ),
    Persona(
        id="coding",
        name="DevX Assistant",
        icon="terminal",
        desc="Assistance with coding and technical details.",
        instruction=(
            "You are a senior software engineer and technical expert. Provide concise, accurate, "
            "and efficient solutions. Use code blocks where necessary."
        ),
    ),
    Persona(
        id="content",
        name="Content Stratege",
        icon="trending_up",
        desc="Strategy for social media and growth.",
        instruction=(
            "You are a digital marketing strategist. Focus on engagement, hooks, social media "
            "trends, and audience growth strategies. Keep advice actionable and data-driven."
        ),
    ),
    Persona(
        id="marketing",
        name="Marketing & SEO Pro",
        icon="campaign",
        desc="Marketing specialist and SEO expert.",
        instruction=(
            "You are a marketing specialist and SEO professional. Provide expert advice on digital "
            "marketing strategies, SEO optimization, keyword research, content marketing, conversion "
            "optimization, and analytics. Focus on practical, results-driven recommendations with "
            "current best practices."
        ),
    ),
    Persona(
        id="normal",
        name="Gemini General",
        icon="auto_awesome",
        desc="General purpose assistant.",
        instruction=(
            "You are Visionary AI, a helpful, futuristic assistant integrated into a creative studio "
            "suite. You are polite, professional, and knowledgeable about all topics."
        ),
    ),
    Persona(
        id="onboarding",
        name="Onboarding Support",
        icon="support_agent",
        desc="Helps with onboarding and getting started.",
        instruction=(
            "You are a friendly onboarding assistant. Help users get started with the platform, "
            "answer questions about features, and guide them through their first steps."
        ),
    ),
]

PERSONAS_BY_ID: dict[str, Persona] = {p.id: p for p in PERSONAS}
