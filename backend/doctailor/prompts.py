from jinja2 import Environment, StrictUndefined

_env = Environment(undefined=StrictUndefined, keep_trailing_newline=False, autoescape=False)

DOCUMENT_LABELS = {
    "cv": "CV/Resume",
    "cover": "Cover Letter",
}

TAILOR_PROMPT = _env.from_string(
    """You are a professional document tailoring assistant. I have a {{ document_label }} that I want to tailor for a job application.

The job title is: {{ job_title }}
The company is: {{ company }}
The job description is:
{{ job_description }}

Here is my original document content:
{{ content }}

Rewrite the document so it better matches the job requirements.
- Highlight the skills and experience that line up with the job description.
- Never invent experience, skills or qualifications that are not in the original.
- Keep the original structure and formatting as closely as possible.
Return only the rewritten document text, without commentary."""
)


def build_prompt(document_type: str, job_title: str, company: str, job_description: str, content: str) -> str:
    return TAILOR_PROMPT.render(
        document_label=DOCUMENT_LABELS.get(document_type, "document"),
        job_title=job_title,
        company=company,
        job_description=job_description,
        content=content,
    )
