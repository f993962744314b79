"""Document templates: rendering tailored text into a layout, plus the default set."""
import logging
import re
from datetime import date
from typing import Dict, List, Optional, Sequence

from jinja2 import DebugUndefined, TemplateSyntaxError
from jinja2.exceptions import SecurityError
from jinja2.sandbox import SandboxedEnvironment

from .models import Job
from .storage import Storage

logger = logging.getLogger(__name__)

# Template content comes from API callers, so it renders sandboxed.
# DebugUndefined leaves unknown placeholders visible instead of blanking them
_env = SandboxedEnvironment(undefined=DebugUndefined, autoescape=False, keep_trailing_newline=True)

NAME_RE = re.compile(r"[A-Z][a-z]+ [A-Z][a-z]+")

SECTION_HEADERS = {
    "summary": ["SUMMARY", "PROFILE", "OBJECTIVE", "ABOUT"],
    "skills": ["SKILLS", "EXPERTISE", "COMPETENCIES"],
    "experience": ["EXPERIENCE", "EMPLOYMENT", "WORK"],
    "education": ["EDUCATION", "ACADEMIC"],
    "certifications": ["CERTIFICATIONS", "CERTIFICATES"],
    "projects": ["PROJECTS", "PORTFOLIO"],
}

SECTION_FALLBACKS = {
    "summary": "Experienced professional with a track record of success...",
    "skills": "Technical Skills, Communication, Leadership",
    "experience": "Professional work history and accomplishments",
    "education": "Degree, Institution, Year",
    "certifications": "",
    "projects": "",
}


class TemplateError(ValueError):
    pass


def validate_template(content: str) -> None:
    try:
        _env.parse(content)
    except TemplateSyntaxError as e:
        raise TemplateError(f"Invalid template syntax on line {e.lineno}: {e.message}") from e


def extract_section(content: str, headers: Sequence[str]) -> Optional[str]:
    """Return the lines under the first line mentioning one of ``headers``.

    The section ends at the next all-caps line ending in ``:`` or ``--``.
    """
    lines = content.split("\n")
    for i, raw in enumerate(lines):
        line = raw.strip().upper()
        if not any(h in line for h in headers):
            continue
        section: List[str] = []
        for nxt in lines[i + 1:]:
            nxt = nxt.strip()
            if nxt and nxt.upper() == nxt and not nxt.startswith("-"):
                if nxt.endswith(":") or nxt.endswith("--"):
                    break
            if nxt:
                section.append(nxt)
        return "\n".join(section)
    return None


def _candidate_name(content: str) -> str:
    lines = [l for l in content.split("\n") if l.strip()]
    match = NAME_RE.search(lines[0]) if lines else None
    return match.group(0) if match else "Your Name"


def _paragraph_about_experience(job: Job) -> str:
    title = job.title or "this position"
    company = job.company or "your company"
    return (
        f"Throughout my career I have built a strong foundation in skills that would directly benefit {company}. "
        f"My experience has prepared me for the {title} role, and I am confident I can make a meaningful "
        "contribution to your team."
    )


def _paragraph_about_skills(content: str) -> str:
    skills_section = extract_section(content, SECTION_HEADERS["skills"])
    key_skills = ""
    if skills_section:
        key_skills = ", ".join(s.strip() for s in skills_section.split(",")[:3] if s.strip())
    key_skills = key_skills or "relevant skills"
    return (
        f"I bring expertise in {key_skills}, which lines up with the requirements in the job description. "
        "I apply these skills to deliver measurable results and would welcome the chance to do so for your organization."
    )


def _paragraph_about_company_fit(job: Job) -> str:
    company = job.company or "your company"
    return (
        f"I am drawn to {company} because of its reputation for excellence and innovation. "
        "I believe my professional approach and work ethic would fit well with your team culture."
    )


def template_variables(content: str, document_type: str, job: Optional[Job] = None) -> Dict[str, str]:
    name = _candidate_name(content)
    variables = {
        "name": name,
        "content": content,
        "email": "your.email@example.com",
        "phone": "123-456-7890",
        "location": "City, State",
    }
    for key, headers in SECTION_HEADERS.items():
        variables[key] = extract_section(content, headers) or SECTION_FALLBACKS[key]

    if job is not None:
        variables["position"] = job.title or "Position"
        variables["companyName"] = job.company or "Company"
        variables["jobDescription"] = job.description or ""
        if document_type == "cover":
            today = date.today()
            variables["date"] = f"{today.strftime('%B')} {today.day}, {today.year}"
            variables["recipientName"] = "Hiring Manager"
            variables["yourName"] = name
            variables["paragraphAboutExperience"] = _paragraph_about_experience(job)
            variables["paragraphAboutSkills"] = _paragraph_about_skills(content)
            variables["paragraphAboutCompanyFit"] = _paragraph_about_company_fit(job)
    return variables


def apply_template(template_content: str, content: str, document_type: str, job: Optional[Job] = None) -> str:
    validate_template(template_content)
    try:
        return _env.from_string(template_content).render(**template_variables(content, document_type, job))
    except SecurityError as e:
        raise TemplateError(f"Template uses a disallowed expression: {e}") from e


DEFAULT_TEMPLATES = [
    {
        "name": "Professional Resume",
        "description": "A clean, professional resume layout suitable for most industries",
        "document_type": "cv",
        "is_default": True,
        "content": """{{name}}
{{email}} | {{phone}} | {{location}}

PROFESSIONAL SUMMARY
--------------------
{{summary}}

SKILLS
------
{{skills}}

EXPERIENCE
----------
{{experience}}

EDUCATION
---------
{{education}}

CERTIFICATIONS
--------------
{{certifications}}
""",
    },
    {
        "name": "Modern Resume",
        "description": "A contemporary resume with markdown-style headings",
        "document_type": "cv",
        "is_default": False,
        "content": """# {{name}}

**{{email}} | {{phone}} | {{location}}**

## Summary
{{summary}}

## Technical Skills
{{skills}}

## Experience
{{experience}}

## Education
{{education}}

## Projects
{{projects}}
""",
    },
    {
        "name": "Minimalist Resume",
        "description": "A simple layout that keeps the focus on content",
        "document_type": "cv",
        "is_default": False,
        "content": """{{name}}
{{email}} | {{phone}}

OBJECTIVE
{{summary}}

SKILLS
{{skills}}

EXPERIENCE
{{experience}}

EDUCATION
{{education}}
""",
    },
    {
        "name": "Traditional Cover Letter",
        "description": "A formal business letter structure",
        "document_type": "cover",
        "is_default": True,
        "content": """{{date}}

{{yourName}}
{{email}} | {{phone}}

{{recipientName}}
{{companyName}}

Dear {{recipientName}},

I am writing to express my interest in the {{position}} position at {{companyName}}.

{{paragraphAboutExperience}}

{{paragraphAboutSkills}}

{{paragraphAboutCompanyFit}}

{{content}}

Thank you for considering my application. I look forward to discussing how I can contribute to {{companyName}}.

Sincerely,

{{yourName}}
""",
    },
    {
        "name": "Modern Cover Letter",
        "description": "A conversational cover letter that leads with the tailored text",
        "document_type": "cover",
        "is_default": False,
        "content": """# {{yourName}}
{{email}} | {{phone}} | {{location}}

{{date}}

Dear {{recipientName}},

{{content}}

Best regards,

{{yourName}}
""",
    },
    {
        "name": "Simple Cover Letter",
        "description": "A short letter that gets straight to the point",
        "document_type": "cover",
        "is_default": False,
        "content": """{{date}}

Dear Hiring Manager,

I am applying for the {{position}} position at {{companyName}}.

{{content}}

Sincerely,
{{yourName}}
""",
    },
]


async def seed_default_templates(storage: Storage) -> int:
    """Insert the default templates for every document type that has none."""
    added = 0
    for document_type in ("cv", "cover"):
        existing = await storage.list_templates(document_type)
        if existing:
            logger.info(f"Found {len(existing)} existing {document_type} templates")
            continue
        for tpl in DEFAULT_TEMPLATES:
            if tpl["document_type"] == document_type:
                await storage.create_template(**tpl)
                added += 1
        logger.info(f"Created default {document_type} templates")
    return added
