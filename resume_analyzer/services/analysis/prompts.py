"""Prompt templates for the four analysis stages.

Every prompt spells out the exact JSON shape with a literal example, asks for
that JSON only, and embeds the full resume text. Stages 2-4 also embed the
stage 1 scores so the model can target the weakest areas.
"""

from __future__ import annotations

import json

from langchain_core.prompts import PromptTemplate

from .schemas import DetailedAnalysis

JSON_ONLY = (
    "Respond with ONLY the JSON below, filled in. No markdown, no code fences, "
    "no explanations before or after it."
)

SCORING_PROMPT = PromptTemplate.from_template(
    """You are a professional resume analyzer. Analyze this resume comprehensively and score it.

Resume:
{resume_text}

Return a JSON object with exactly these fields. All scores are numbers from 1 to 100.
{{
  "impactScore": 75,
  "clarityScore": 80,
  "achievementScore": 70,
  "skillsRelevance": 85,
  "overallScore": 77,
  "sectionScores": {{
    "summary": 70,
    "experience": 80,
    "education": 75,
    "skills": 85
  }}
}}

{json_only}"""
)

IMPROVEMENTS_PROMPT = PromptTemplate.from_template(
    """You are a professional resume coach. Based on this resume and its analysis scores, suggest specific improvements.

Resume:
{resume_text}

Analysis:
{analysis_json}

Return a JSON object in this exact format. "priority" is one of "high", "medium", "low".
{{
  "improvements": [
    {{
      "area": "Professional Summary",
      "suggestion": "Add quantifiable achievements to the summary",
      "priority": "high"
    }}
  ]
}}

{json_only}"""
)

INSIGHTS_PROMPT = PromptTemplate.from_template(
    """You are a career strategist. Generate strategic insights for this resume.

Resume:
{resume_text}

Analysis:
{analysis_json}

Return a JSON array in this exact format. "type" is one of "strength", "weakness", "opportunity", "gap".
[
  {{
    "type": "strength",
    "description": "Strong backend engineering background",
    "actionItems": ["Highlight system design work", "Link to open source contributions"]
  }}
]

{json_only}"""
)

MARKET_ALIGNMENT_PROMPT = PromptTemplate.from_template(
    """You are a hiring market analyst. Analyze how well this resume aligns with the current job market for the candidate's target role.

Resume:
{resume_text}

Analysis:
{analysis_json}

Return a JSON object in this exact format. "roleAlignment" is a number from 0 to 100.
{{
  "roleAlignment": 70,
  "missingKeywords": ["Kubernetes", "CI/CD"],
  "industryTrends": ["Cloud-native architectures"],
  "recommendedSkills": ["Terraform"]
}}

{json_only}"""
)


def _serialize_analysis(analysis: DetailedAnalysis) -> str:
    return json.dumps(analysis.model_dump(by_alias=True), indent=2)


def build_scoring_prompt(resume_text: str) -> str:
    return SCORING_PROMPT.format(resume_text=resume_text, json_only=JSON_ONLY)


def build_improvements_prompt(resume_text: str, analysis: DetailedAnalysis) -> str:
    return IMPROVEMENTS_PROMPT.format(
        resume_text=resume_text,
        analysis_json=_serialize_analysis(analysis),
        json_only=JSON_ONLY,
    )


def build_insights_prompt(resume_text: str, analysis: DetailedAnalysis) -> str:
    return INSIGHTS_PROMPT.format(
        resume_text=resume_text,
        analysis_json=_serialize_analysis(analysis),
        json_only=JSON_ONLY,
    )


def build_market_alignment_prompt(resume_text: str, analysis: DetailedAnalysis) -> str:
    return MARKET_ALIGNMENT_PROMPT.format(
        resume_text=resume_text,
        analysis_json=_serialize_analysis(analysis),
        json_only=JSON_ONLY,
    )
