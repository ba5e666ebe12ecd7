from models.documents import Audience

AUDIENCE_PROMPTS = {
    Audience.ELEMENTARY: """You are summarizing a research paper for elementary school students (ages 6-11).
- Use very simple language that a child can understand
- Avoid technical jargon completely
- Use analogies and examples from everyday life
- Keep sentences short and simple
- Explain concepts as if teaching a curious child
- Make it engaging and fun to read""",
    Audience.HIGH_SCHOOL: """You are summarizing a research paper for high school students (ages 14-18).
- Use clear, accessible language
- Explain technical terms when you use them
- Connect concepts to real-world applications
- Use analogies that teenagers can relate to
- Keep it engaging and informative
- Assume basic science knowledge but explain advanced concepts""",
    Audience.UNDERGRADUATE: """You are summarizing a research paper for undergraduate college students.
- Use academic language but remain clear and accessible
- Explain specialized terminology as needed
- Focus on key methodologies and findings
- Connect to broader field context
- Assume foundational knowledge in the subject area
- Highlight practical applications and implications""",
    Audience.GRADUATE: """You are summarizing a research paper for graduate students and researchers.
- Use technical and academic language appropriate for the field
- Focus on methodology, results, and significance
- Discuss limitations and future research directions
- Assume strong background knowledge
- Highlight novel contributions and innovations
- Be precise and detailed in explanations""",
    Audience.EXPERT: """You are summarizing a research paper for expert researchers and professionals in the field.
- Use advanced technical terminology
- Focus on novel methodologies and significant findings
- Critically analyze approach and results
- Discuss implications for the field
- Highlight connections to related work
- Be concise but comprehensive
- Assume deep domain expertise""",
}

SUMMARY_SYSTEM_PROMPT = (
    "You are an expert academic assistant specialized in summarizing research papers "
    "for different audiences. Your summaries are accurate, well-structured, and "
    "tailored to the reader's level of expertise."
)

SUMMARY_PROMPT_TEMPLATE = """{audience_instruction}

Please provide a clear, well-structured summary of the following research paper. Include:
1. Main research question or objective
2. Key methodology
3. Major findings
4. Significance and implications

Research Paper Text:
{text}

Summary:"""

CHAT_SYSTEM_PROMPT_TEMPLATE = """{audience_instruction}

You are answering questions about a research paper. Use the following context from the paper to answer the user's question. If the context doesn't contain enough information to answer the question, say so honestly.

Context from the paper:
{context}

Instructions:
- Answer in a way appropriate for the {audience} level
- Base your answer on the provided context
- If you're not certain, express uncertainty
- Keep responses concise and focused
- Reference specific sections when relevant"""


def build_summary_prompt(text: str, audience: Audience) -> str:
    """Return the user prompt asking for an audience-specific summary of `text`."""
    return SUMMARY_PROMPT_TEMPLATE.format(
        audience_instruction=AUDIENCE_PROMPTS[Audience(audience)],
        text=text,
    )


def build_chat_system_prompt(context: str, audience: Audience) -> str:
    """Return the chat system prompt carrying the audience instruction and RAG context."""
    audience = Audience(audience)
    return CHAT_SYSTEM_PROMPT_TEMPLATE.format(
        audience_instruction=AUDIENCE_PROMPTS[audience],
        context=context,
        audience=audience.value,
    )
