"""Recruitment tool declarations."""

from .tool_registry import ToolDeclaration, ToolRegistry

GENERATE_JOB_DESCRIPTION = ToolDeclaration(
    name="generate_job_description",
    description=(
        "Generates a comprehensive, well-structured job description based on role "
        "requirements, company information, and best practices in recruitment "
        "marketing. Outputs formatted text ready for job boards."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "job_title": {
                "type": "string",
                "description": "The title of the position (e.g., 'Senior Software Engineer')",
            },
            "company": {"type": "string", "description": "Company name"},
            "department": {
                "type": "string",
                "description": "Department or team the role belongs to",
            },
            "requirements": {
                "type": "array",
                "items": {"type": "string"},
                "description": "List of required skills, qualifications, and experience",
            },
            "responsibilities": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Key responsibilities and day-to-day tasks",
            },
            "benefits": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Employee benefits and perks",
            },
            "location": {
                "type": "string",
                "description": "Job location (e.g., 'Remote', 'Hybrid - NYC')",
            },
            "salary_range": {
                "type": "string",
                "description": "Salary range or compensation details",
            },
            "employment_type": {
                "type": "string",
                "enum": ["full-time", "part-time", "contract", "internship"],
                "description": "Type of employment",
            },
        },
        "required": ["job_title", "company", "requirements"],
    },
    subject="job description",
)

GENERATE_SEO_CONTENT = ToolDeclaration(
    name="generate_seo_content",
    description=(
        "Creates SEO-optimized content specifically for the recruitment industry. "
        "Generates blog posts, landing pages, or other content that ranks well and "
        "attracts qualified candidates or clients."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "content_type": {
                "type": "string",
                "enum": ["blog_post", "landing_page", "job_listing", "company_page"],
                "description": "Type of content to generate",
            },
            "target_keywords": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Primary and secondary keywords to target for SEO",
            },
            "industry": {
                "type": "string",
                "description": "Recruitment niche (e.g., 'tech recruitment', 'executive search')",
            },
            "word_count": {
                "type": "number",
                "description": "Target word count for the content (default: 800)",
            },
            "tone": {
                "type": "string",
                "enum": ["professional", "casual", "authoritative", "friendly"],
                "description": "Desired tone of voice for the content",
            },
            "target_audience": {
                "type": "string",
                "description": "Intended audience (e.g., 'job seekers', 'hiring managers')",
            },
        },
        "required": ["content_type", "target_keywords", "industry"],
    },
    subject="SEO content",
)

RECRUITMENT_TOOLS = [GENERATE_JOB_DESCRIPTION, GENERATE_SEO_CONTENT]


def create_tool_registry() -> ToolRegistry:
    """Registry holding every recruitment tool."""
    return ToolRegistry(RECRUITMENT_TOOLS)
