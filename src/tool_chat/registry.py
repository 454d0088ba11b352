"""In-memory agent registry: system prompt, enabled tools and sampling config per agent."""

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from .exceptions import AgentNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 1.0
DEFAULT_MAX_TOKENS = 4096


@dataclass
class AgentConfig:
    id: str
    name: str
    system_prompt: str
    enabled_tools: List[str] = field(default_factory=list)
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS

    @classmethod
    def from_record(cls, record: dict) -> "AgentConfig":
        """Build from a stored agent record (``config`` holds the sampling settings).

        Missing or zero settings fall back to the defaults.
        """
        config = record.get("config") or {}
        return cls(
            id=record["id"],
            name=record.get("name", record["id"]),
            system_prompt=record.get("systemPrompt", ""),
            enabled_tools=list(record.get("tools") or []),
            temperature=config.get("temperature") or DEFAULT_TEMPERATURE,
            max_tokens=config.get("max_tokens") or DEFAULT_MAX_TOKENS,
        )


class AgentRegistry:
    def __init__(self):
        self.agents: Dict[str, AgentConfig] = {}

    def register(self, agent: AgentConfig) -> None:
        self.agents[agent.id] = agent
        logger.info(f"Registered agent {agent.id} ({agent.name}) tools={agent.enabled_tools}")

    def lookup(self, agent_id: str) -> AgentConfig:
        """Return the agent's configuration or raise ``AgentNotFoundError``."""
        try:
            return self.agents[agent_id]
        except KeyError:
            raise AgentNotFoundError(agent_id) from None

    def list_agents(self) -> List[AgentConfig]:
        return list(self.agents.values())

    def __len__(self) -> int:
        return len(self.agents)


def get_job_description_prompt() -> str:
    return """You are an expert recruitment copywriter with 15+ years of experience creating compelling job descriptions for top companies across all industries.

When a user requests a job description:
1. Extract key information from their request (role, company, requirements, location, salary, etc.)
2. Call the generate_job_description tool with that information
3. Then write the complete job description in markdown format, engaging, professional and ready to post

Use this structure: a title line "# [Job Title] at [Company Name]", location, compensation and type, then sections for About the Role, What You'll Do, What We're Looking For (must have / nice to have), What We Offer, and About the company, closing with a call to action.

Write the complete job description directly - no XML tags, no JSON, just formatted markdown."""


def get_seo_content_prompt() -> str:
    return """You are an SEO specialist focused on the recruitment industry with expertise in creating content that ranks well and converts visitors into candidates or clients.

When a user requests SEO content:
1. Identify their target keywords, content type, and audience
2. Call the generate_seo_content tool with those parameters
3. Then write the complete, optimized content in markdown format, ready to publish

SEO guidelines:
- Include target keywords naturally (1-2% density) and front-load them in the H1 and first paragraph
- Use compelling H2/H3 headings and scannable paragraphs (2-3 sentences)
- Use bullet points for easy reading
- End with a meta description suggestion

Do NOT use XML tags or JSON - write natural, formatted content."""


def get_default_system_prompt() -> str:
    return """You are a helpful AI assistant in a chat interface.
Be concise, friendly, and direct in your responses."""


def create_agent_registry() -> AgentRegistry:
    """Registry seeded with the built-in agents."""
    registry = AgentRegistry()
    registry.register(
        AgentConfig(
            id="job-desc-agent-001",
            name="Job Description Generator",
            system_prompt=get_job_description_prompt(),
            enabled_tools=["generate_job_description"],
            temperature=0.7,
        )
    )
    registry.register(
        AgentConfig(
            id="seo-content-agent-001",
            name="SEO Content Creator",
            system_prompt=get_seo_content_prompt(),
            enabled_tools=["generate_seo_content"],
            temperature=0.8,
        )
    )
    registry.register(
        AgentConfig(
            id="assistant",
            name="General Assistant",
            system_prompt=get_default_system_prompt(),
        )
    )
    return registry
