#!/usr/bin/env python3
"""
Prompts for content repurposing

This module contains all AI prompts used by the backend: the thought-leadership
content prompt (format and voice variants, tone DNA ghostwriting), the
two-host podcast script prompt, transcript merging and featured-image
prompts. Keep prompt text here so changes are reviewed in one place.
"""

import json
import math
import re
from typing import Dict, List, Optional, Tuple


BANNED_WORDS = [
    'delve', 'realm', 'tapestry', 'symphony', 'unleash', 'unlock',
    'game-changer', 'landscape', 'fostering', 'harnessing', 'leveraging',
    'pivotal', 'crucial', 'furthermore', 'in conclusion', 'firstly',
    'secondly', 'thirdly', 'lastly', 'moreover', 'hence', 'thus',
    'therefore', 'whilst', 'amongst', 'endeavor', 'paradigm', 'synergy',
    'holistic', 'seamless', 'robust', 'cutting-edge', 'state-of-the-art',
    'best-in-class', 'next-level', 'transformative',
]

BANNED_PHRASES = [
    'In the fast-paced world of',
    "In today's ever-evolving",
    "It's important to note",
    'At the end of the day',
    'When it comes to',
    'It goes without saying',
    'Needless to say',
    'The fact of the matter is',
    'In this day and age',
    'All things considered',
    'For all intents and purposes',
    'By and large',
    'In light of',
    'With that being said',
    'Having said that',
    'Let me be clear',
    'Make no mistake',
    'The bottom line is',
    'At the core of',
    'Moving forward',
]

_banned_words = '\n'.join(f'- {word}' for word in BANNED_WORDS)
_banned_phrases = '\n'.join(f'- "{phrase}"' for phrase in BANNED_PHRASES)

BASE_SYSTEM_PROMPT = f"""You are an Industry Thought Leader and expert educational writer. You write original, high-value insights that challenge the status quo and provide actionable advice.

## TRANSCRIPT USAGE (CRITICAL)
- The provided transcript(s) are ONLY for inspiration and finding core topics/themes.
- Do NOT summarize the transcripts.
- Do NOT retell the stories from the transcripts.
- Do NOT mention "the video," "the speaker," "the transcript," or any reference to video content.
- The reader must NEVER know this content was inspired by a video. It must stand 100% on its own as original thought leadership.

## GOAL
- Extract the underlying *concepts* and take them to the next level.
- Add new educational value, deeper analysis, or broader context that wasn't even in the original source.
- Make it actionable and insightful.
- Challenge conventional thinking when appropriate.

## NEVER USE THESE WORDS/PHRASES
{_banned_words}

{_banned_phrases}

## STRICT STYLE RULES
1. **NO Em Dashes:** Never use em dashes. Use commas, periods, or restructure the sentence.
2. **NO Rhetorical Questions:** Make direct statements. Never start with "Ever wondered...?" or "Have you ever thought about...?"
3. **MAX 1 Emoji:** Preferably zero emojis. If you must use one, only one total.
4. **HUMAN FLOW:**
   - Use sentence fragments occasionally for emphasis.
   - Start sentences with 'And' or 'But' when it flows naturally.
   - Use contractions (don't, won't, can't, it's).
   - Write like you're talking to a friend over coffee.
   - Use imperfect, conversational flow.
5. **AVOID LISTICLE FORMAT:** Don't default to numbered lists. Use them sparingly and only when truly needed.
6. **STRONG OPENINGS:** Never start with a weak or generic opener. Jump straight into value.
7. **CONCRETE > ABSTRACT:** Use specific examples, numbers, and real scenarios instead of vague concepts.
"""

FORMAT_PROMPTS: Dict[str, str] = {
    'linkedin': """
## LINKEDIN-SPECIFIC REQUIREMENTS
- CRITICAL LIMIT: Total output MUST be under 3,000 characters (approximately 500 words).
- Hook readers in the first 2 lines (this is what shows before "see more").
- Use short paragraphs (1-2 sentences each).
- Include a clear call-to-action or thought-provoking ending.
- Write for a professional audience but keep it conversational.
- No hashtags unless specifically requested.
""",
    'twitter': """
## TWITTER/X-SPECIFIC REQUIREMENTS
- Create a thread of 3-7 tweets.
- Each tweet must be under 280 characters.
- First tweet must be a powerful hook that stands alone.
- Number each tweet (1/, 2/, etc.).
- End with a summary tweet or call-to-action.
- No hashtags unless specifically requested.
""",
    'blog-short': """
## SHORT BLOG POST REQUIREMENTS
- Target length: 600-900 words.
- Include a compelling headline (H1).
- Use 2-3 subheadings (H2) to break up content.
- Opening paragraph should hook the reader immediately.
- Include at least one concrete example or case study.
- End with a clear takeaway or next step.
""",
    'blog-long': """
## LONG-FORM BLOG POST REQUIREMENTS
- Target length: 1,500-2,500 words.
- Include a compelling headline (H1).
- Use 4-6 subheadings (H2/H3) for structure.
- Include an introduction that previews the value.
- Provide multiple examples, data points, or case studies.
- Include actionable tips or frameworks.
- End with a comprehensive summary and next steps.
""",
    'newsletter': """
## NEWSLETTER REQUIREMENTS
- Write in first person, direct to reader.
- Start with a personal anecdote or observation.
- Keep paragraphs short and scannable.
- Include one main insight or lesson.
- End with a question or invitation for reply.
- Target length: 400-800 words.
""",
    'youtube-script': """
## YOUTUBE SCRIPT REQUIREMENTS
- Write for spoken delivery (read aloud naturally).
- Start with a hook in the first 10 seconds.
- Include clear transitions between sections.
- Mark [PAUSE] where natural pauses should occur.
- Include [B-ROLL: description] suggestions for visuals.
- Target length: 8-15 minutes of speaking (roughly 1,200-2,250 words).
""",
    'youtube-short': """
## YOUTUBE SHORT SCRIPT REQUIREMENTS
- Maximum 60 seconds of speaking time (~150 words).
- Hook in the first 2 seconds.
- One single, powerful idea.
- Fast-paced, punchy delivery.
- Strong visual suggestion for the hook.
- End with a reason to follow/subscribe.
""",
    'tiktok': """
## TIKTOK SCRIPT REQUIREMENTS
- Maximum 60 seconds (~150 words).
- Hook viewers in the first 1-2 seconds.
- Use casual, energetic language.
- One clear value proposition.
- Include [TEXT ON SCREEN: ] suggestions.
- End with a hook for comments or follows.
""",
    'instagram-reel': """
## INSTAGRAM REEL REQUIREMENTS
- Maximum 60-90 seconds (~200 words).
- Visual-first thinking (describe what's on screen).
- Hook in first 1-2 seconds.
- Educational or inspirational focus.
- Include [CAPTION: ] for on-screen text.
- End with engagement prompt.
""",
    'explainer-video': """
## EXPLAINER VIDEO SCRIPT REQUIREMENTS
- Clear problem-solution structure.
- Target length: 2-4 minutes (~400-600 words).
- Include [VISUAL: ] suggestions throughout.
- Start by identifying the problem/pain point.
- Walk through the solution step by step.
- End with clear call-to-action.
""",
}

VOICE_PROMPTS: Dict[str, str] = {
    'professional': """
## VOICE: PROFESSIONAL
- Authoritative but approachable
- Data-driven and evidence-based
- Confident without being arrogant
- Suitable for executive/leadership audience
""",
    'casual': """
## VOICE: CASUAL
- Friendly and relatable
- Use everyday language
- Include personal touches and humor where appropriate
- Like talking to a smart friend
""",
    'humorous': """
## VOICE: HUMOROUS
- Witty and entertaining
- Use clever observations and wordplay
- Self-deprecating humor is welcome
- Still deliver valuable insights (humor serves the message)
""",
    'empathetic': """
## VOICE: EMPATHETIC
- Understanding and supportive
- Acknowledge challenges and struggles
- Offer encouragement alongside advice
- Use "I understand" and "You're not alone" type language
""",
    'direct': """
## VOICE: DIRECT & BOLD
- No fluff or padding
- Say what needs to be said
- Challenge the reader's assumptions
- Provocative but substantive
- Strong opinions backed by reasoning
""",
    'custom': '',
}


class ContentGenerationPrompt:
    """
    Thought-leadership content prompt

    Turns one or more transcripts into original content for a target format
    (LinkedIn post, tweet thread, blog, short-video script, ...) in a chosen
    voice. The 'custom' voice uses a stored tone DNA as a ghostwriter brief.
    """

    SLUG = "content-generation"
    NAME = "Content Generation"
    MODEL = "claude-sonnet-4-20250514"
    MAX_TOKENS = 4096
    TEMPERATURE = 0.7

    @staticmethod
    def build_system(
        content_format: str,
        voice: str,
        tone_dna: Optional[str] = None,
        custom_instructions: Optional[str] = None,
        length_constraint: Optional[Dict] = None,
    ) -> str:
        """
        Build the system prompt

        Args:
            content_format: Key into FORMAT_PROMPTS
            voice: Key into VOICE_PROMPTS, or 'custom' with tone_dna
            tone_dna: Style description extracted from the user's writing
            custom_instructions: Free-form extra instructions
            length_constraint: {'type': 'words'|'paragraphs'|'characters', 'value': int}

        Returns:
            System prompt string
        """
        if voice == 'custom' and tone_dna:
            prompt = (
                "You are a ghostwriter for a specific client. You must strictly mimic their unique writing style.\n\n"
                "## STYLE DNA (MIMIC THIS EXACTLY)\n"
                f"{tone_dna}\n\n"
                "---\n\n"
                f"{BASE_SYSTEM_PROMPT}\n"
            )
        else:
            prompt = BASE_SYSTEM_PROMPT
            voice_prompt = VOICE_PROMPTS.get(voice)
            if voice_prompt:
                prompt += '\n' + voice_prompt

        format_prompt = FORMAT_PROMPTS.get(content_format)
        if format_prompt:
            prompt += '\n' + format_prompt

        if length_constraint:
            prompt += (
                "\n## LENGTH REQUIREMENT\n"
                f"Your response must be approximately {length_constraint['value']} {length_constraint['type']}.\n"
            )

        if custom_instructions:
            prompt += f"\n## ADDITIONAL INSTRUCTIONS\n{custom_instructions}\n"

        return prompt

    @staticmethod
    def build_user_message(transcripts: List[str]) -> str:
        if len(transcripts) == 1:
            return (
                "Here is the transcript to use as inspiration for your original content:\n\n"
                f"---\n{transcripts[0]}\n---\n\n"
                "Remember: Use this ONLY for inspiration. Create completely original thought "
                "leadership content that stands on its own."
            )

        sections = '\n'.join(
            f"--- TRANSCRIPT {index} ---\n{text}\n" for index, text in enumerate(transcripts, start=1)
        )
        return (
            f"Here are {len(transcripts)} transcripts to use as inspiration for your original content:\n\n"
            f"{sections}\n---\n\n"
            "Remember: Use these ONLY for inspiration. Synthesize the themes and create completely "
            "original thought leadership content that stands on its own."
        )


HOST_PERSONAS = {
    'alex': {
        'name': 'Alex',
        'role': 'Skeptical Host',
        'default_voice': {
            'google': 'en-US-Neural2-D',
            'elevenlabs': 'pNInz6obpgDQGcFmaJgB',  # Adam
        },
    },
    'jamie': {
        'name': 'Jamie',
        'role': 'Expert Host',
        'default_voice': {
            'google': 'en-US-Neural2-F',
            'elevenlabs': 'EXAVITQu4vr4xnSDxMaL',  # Bella
        },
    },
}

DEFAULT_HOST_ROLES = {
    'host1': "Asks clarifying questions, plays devil's advocate, represents the audience's perspective",
    'host2': 'Explains concepts with enthusiasm, provides examples and analogies, makes complex ideas accessible',
}

EMOTION_TAGS = [
    'curious', 'excited', 'thoughtful', 'amused', 'serious',
    'enthusiastic', 'cautious', 'cheerful', 'surprised', 'warm',
    'laughing', 'chuckling', 'sigh',
]

DURATION_GUIDELINES = {
    'short': {'word_count': '600-900 words', 'segments': '4-6 exchanges', 'description': '3-5 minute podcast'},
    'medium': {'word_count': '1500-2200 words', 'segments': '10-15 exchanges', 'description': '8-12 minute podcast'},
    'long': {'word_count': '2800-3800 words', 'segments': '20-30 exchanges', 'description': '15-20 minute podcast'},
}


class PodcastScriptPrompt:
    """
    Two-host podcast script prompt

    Output: JSON with title, description, segments [{speaker, text, emotion}]
    and keyTakeaways.
    """

    SLUG = "podcast-script"
    NAME = "Podcast Script"
    MODEL = "claude-sonnet-4-20250514"
    MAX_TOKENS = 4000
    TEMPERATURE = 0.8
    SYSTEM = (
        "You are an expert podcast script writer. You create natural, engaging conversations "
        "between two hosts. Always respond with valid JSON only."
    )

    @staticmethod
    def build(content: str, options: Optional[Dict] = None) -> str:
        """
        Build the script-writing prompt

        Args:
            content: Blog post or article text to convert
            options: host_names, host_roles, target_duration, tone,
                focus_guidance, include_intro, include_outro

        Returns:
            Complete prompt string
        """
        options = options or {}
        host_names = options.get('host_names') or {'host1': 'Alex', 'host2': 'Jamie'}
        host_roles = options.get('host_roles') or {}
        duration = DURATION_GUIDELINES.get(options.get('target_duration') or 'medium', DURATION_GUIDELINES['medium'])
        tone = options.get('tone') or 'casual'
        include_intro = options.get('include_intro', True)
        include_outro = options.get('include_outro', True)

        host1 = host_names.get('host1') or 'Alex'
        host2 = host_names.get('host2') or 'Jamie'
        host1_role = host_roles.get('host1') or DEFAULT_HOST_ROLES['host1']
        host2_role = host_roles.get('host2') or DEFAULT_HOST_ROLES['host2']

        focus_section = ''
        if options.get('focus_guidance'):
            focus_section = f"\n## EPISODE FOCUS\n\n{options['focus_guidance']}\n\n---\n"

        intro_line = ('4. Include a brief intro welcoming listeners' if include_intro
                      else '4. Skip intro - start directly with content')
        outro_line = ('5. Include a brief outro with key takeaways' if include_outro
                      else '5. Skip outro - end naturally')

        return f"""You are a podcast script writer. Convert the following blog post into a natural, engaging two-host podcast conversation.

## HOSTS

**{host1}**:
- Role: {host1_role}
- Keep the conversation grounded and relatable

**{host2}**:
- Role: {host2_role}
- Make complex ideas accessible
{focus_section}
## FORMAT REQUIREMENTS

1. Target length: {duration['word_count']} ({duration['description']})
2. Structure: {duration['segments']}
3. Tone: {tone}
{intro_line}
{outro_line}

## OUTPUT FORMAT

Return the script as JSON:

{{
  "title": "Episode title based on content",
  "description": "Brief episode description for show notes",
  "segments": [
    {{"speaker": "{host1}", "text": "The dialogue for this segment...", "emotion": "curious"}},
    {{"speaker": "{host2}", "text": "Response dialogue...", "emotion": "enthusiastic"}}
  ],
  "keyTakeaways": ["Takeaway 1", "Takeaway 2", "Takeaway 3"]
}}

## EMOTION OPTIONS

Use these emotion tags to guide voice delivery: {', '.join(EMOTION_TAGS)}.
Inline cues are allowed in the text, e.g. "[laughing] That's hilarious!" or "[sigh] Well, that's complicated..."

## STYLE GUIDELINES

- Make it sound like a REAL conversation, not a scripted reading
- Include natural reactions: "Oh interesting!", "Hmm...", "Right, right"
- Use contractions and casual language
- Break up long explanations with questions
- Add occasional humor or relatable analogies
- Each segment should be 1-3 sentences (natural speech length)

## BLOG CONTENT TO CONVERT

{content}

---

Generate the podcast script now. Return ONLY valid JSON, no markdown code blocks in your response."""


class TranscriptSynthesisPrompt:
    """
    Merge several transcripts into one source text for a podcast script

    Each transcript is cut to MAX_CHARS_PER_TRANSCRIPT characters so a
    handful of long videos still fits one request.
    """

    SLUG = "transcript-synthesis"
    NAME = "Transcript Synthesis"
    MAX_TOKENS = 4000
    TEMPERATURE = 0.7
    MAX_CHARS_PER_TRANSCRIPT = 8000
    SYSTEM = "You combine several video transcripts into one clean piece of source material."

    @staticmethod
    def build(transcripts: List[Dict]) -> str:
        """
        Args:
            transcripts: Rows with video_title and content
        """
        sections = '\n\n'.join(
            f"=== Transcript {index}: {t.get('video_title') or 'Untitled'} ===\n"
            f"{(t.get('content') or '')[:TranscriptSynthesisPrompt.MAX_CHARS_PER_TRANSCRIPT]}"
            for index, t in enumerate(transcripts, start=1)
        )
        return f"""You are synthesizing multiple YouTube video transcripts into a single coherent content piece for podcast conversion.

TRANSCRIPTS:
{sections}

Create a unified content piece that:
1. Combines the key insights and themes from all transcripts
2. Maintains a logical flow and narrative
3. Removes redundant information
4. Preserves important quotes and examples
5. Organizes content into clear sections

Output the synthesized content as clean text, ready for podcast script generation. Do not add markdown formatting, just plain text paragraphs."""


IMAGE_STYLES = {
    'photorealistic': {
        'prefix': 'Professional photograph, ultra-realistic, high resolution, sharp focus, natural lighting,',
        'suffix': '8K quality, professional photography, detailed textures',
    },
    'cartoon': {
        'prefix': 'Cartoon illustration, vibrant colors, clean lines, playful style,',
        'suffix': 'vector art style, bold outlines, friendly appearance',
    },
    'infographic': {
        'prefix': 'Clean infographic design, minimalist, professional data visualization,',
        'suffix': 'white background, clear typography, modern design elements',
    },
    '3d-render': {
        'prefix': '3D render, high-quality CGI, studio lighting, glossy materials,',
        'suffix': 'octane render, volumetric lighting, depth of field',
    },
    'minimalist': {
        'prefix': 'Minimalist design, clean composition, simple shapes, negative space,',
        'suffix': 'modern aesthetic, subtle colors, elegant simplicity',
    },
    'hand-drawn': {
        'prefix': 'Hand-drawn illustration, artistic sketch, pencil or ink style,',
        'suffix': 'organic lines, artistic texture, authentic hand-crafted feel',
    },
    'cyberpunk': {
        'prefix': 'Cyberpunk style, neon lights, futuristic cityscape, high-tech,',
        'suffix': 'rain-slicked streets, holographic elements, dystopian atmosphere',
    },
    'oil-painting': {
        'prefix': 'Oil painting style, classical art technique, rich textures, brush strokes visible,',
        'suffix': 'museum quality, dramatic lighting, fine art aesthetic',
    },
    'corporate-tech': {
        'prefix': 'Corporate technology image, professional business setting, clean modern office,',
        'suffix': 'diverse professionals, modern technology, bright and optimistic',
    },
}

IMAGE_MOODS = {
    'professional': 'professional atmosphere, corporate setting, polished appearance, confident mood',
    'vibrant': 'vibrant colors, high energy, dynamic composition, exciting atmosphere',
    'dark-moody': 'dark atmosphere, dramatic shadows, moody lighting, intense mood',
    'soft-light': 'soft lighting, warm tones, gentle atmosphere, inviting mood, golden hour',
    'futuristic': 'futuristic design, innovative technology, forward-looking, cutting-edge aesthetic',
}

ASPECT_RATIO_HINTS = {
    '16:9': 'wide landscape format, 16:9 aspect ratio',
    '1:1': 'square format, 1:1 aspect ratio',
    '9:16': 'tall portrait format, 9:16 aspect ratio for mobile',
}

NEGATIVE_IMAGE_TERMS = [
    'blurry', 'low quality', 'distorted', 'watermark', 'text overlay', 'logo',
    'signature', 'cropped', 'out of frame', 'ugly', 'deformed', 'noisy', 'grainy',
]


class ImagePrompt:
    """
    Featured-image prompts

    Claude first suggests a visual concept for the content (JSON); the
    concept, style and mood are then folded into a Gemini image prompt.
    """

    SLUG = "image-from-content"
    NAME = "Image From Content"
    MAX_TOKENS = 1024
    TEMPERATURE = 0.7
    MAX_CONTENT_CHARS = 2000
    SYSTEM = """You are an expert at creating visual prompts for AI image generation. Given written content, you will create a detailed prompt for generating a compelling featured image.

## YOUR TASK
Analyze the content and create an image prompt that:
1. Captures the main theme or message
2. Would work as a thumbnail or featured image
3. Is visually interesting and scroll-stopping
4. Avoids clichés (no handshakes, lightbulbs, generic office scenes)

## OUTPUT FORMAT
Return a JSON object:
{
  "mainSubject": "Detailed description of the primary visual element",
  "composition": "How elements should be arranged",
  "colorPalette": "Suggested colors that match the content mood",
  "visualMetaphors": ["Creative visual ideas that represent the concepts"],
  "avoidElements": ["Things that would be cliché or inappropriate"]
}

## GUIDELINES
- Be specific and descriptive
- Think creatively, avoid generic stock photo ideas
- Consider what would make someone click
- Match the tone of the content (serious content = serious imagery)
"""

    @staticmethod
    def build(subject: str, style: str, mood: str) -> str:
        """Wrap a subject in the style prefix/suffix and mood modifiers"""
        style_config = IMAGE_STYLES[style]
        parts = [style_config['prefix'], subject, IMAGE_MOODS[mood], style_config['suffix']]
        return re.sub(r'\s+', ' ', ' '.join(parts)).strip()

    @staticmethod
    def negative_prompt(extra: Optional[str] = None) -> str:
        terms = NEGATIVE_IMAGE_TERMS + ([extra] if extra else [])
        return ', '.join(terms)

    @staticmethod
    def build_suggestion_message(content: str, content_format: Optional[str] = None) -> str:
        return (
            f"Create an image prompt for the following {content_format or 'content'}:\n\n"
            f"---\n{content[:ImagePrompt.MAX_CONTENT_CHARS]}\n---\n\n"
            "Generate a creative image concept as a JSON object."
        )

    @staticmethod
    def parse_suggestion(response: str) -> Optional[Dict]:
        """Claude's concept as a dict, or None when it is not valid JSON"""
        fenced = re.search(r'```(?:json)?\s*([\s\S]*?)```', response)
        raw = fenced.group(1) if fenced else response
        try:
            parsed = json.loads(raw.strip())
        except json.JSONDecodeError:
            return None
        if not isinstance(parsed, dict):
            return None
        return {
            'mainSubject': str(parsed.get('mainSubject') or ''),
            'composition': str(parsed.get('composition') or ''),
            'colorPalette': str(parsed.get('colorPalette') or ''),
        }


def estimate_segment_duration(text: str) -> int:
    """Seconds to speak text at 150 words per minute"""
    words = len(text.split())
    return math.ceil(words / 2.5)


def estimate_total_duration(segments: List[Dict]) -> Tuple[int, str]:
    """
    Estimate total podcast length

    Returns:
        (seconds, 'm:ss')
    """
    total = sum(estimate_segment_duration(segment.get('text', '')) for segment in segments)
    minutes, seconds = divmod(total, 60)
    return total, f"{minutes}:{seconds:02d}"
