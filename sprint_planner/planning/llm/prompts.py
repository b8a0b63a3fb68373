"""Remote Planner Prompts.

Strict prompts that ask for a single JSON sprint plan.
Mode-specific rules keep skeleton sprints minimal and expansions additive.
"""

import json
from typing import Any

SYSTEM_PROMPT = """You are a planner that generates short, portfolio-first learning sprints.

Given learner profile context, an objective, and optional preferred length, produce a JSON sprint plan that strictly matches the provided schema.

Rules:
- Portfolio-first: include at least one project with deliverables and an evidence rubric.
- Keep microTasks between 30 and 90 minutes and end each with an acceptance check.
- Respect learner hours, strengths, gaps and blockers.
- Use the context payload (profile summary, streak, completed tasks) to adapt deliverables and pacing.
- Output MUST be valid JSON only and match the SprintPlan schema exactly.
- Do NOT wrap the JSON in markdown code blocks."""

SCHEMA_PROMPT = """JSON Schema (SprintPlan):
{
  "id": string,
  "title": string,
  "description": string,
  "lengthDays": 1 | 3 | 7 | 14,
  "totalEstimatedHours": number (>= 1),
  "difficulty": "beginner" | "intermediate" | "advanced",
  "projects": [
    {
      "id": string,
      "title": string,
      "brief": string,
      "requirements": string[] (>= 1),
      "acceptanceCriteria": string[] (>= 1),
      "deliverables": [ { "type": "repository" | "deployment" | "video" | "screenshot", "title": string, "artifactId": string } ],
      "evidenceRubric": {
        "dimensions": [ { "name": string, "weight": number (0..1), "levels"?: string[] } ],
        "passThreshold": number (0..1)
      },
      "checkpoints"?: [ { "id": string, "title": string, "type": "assessment" | "quiz" | "demo", "spec": string } ],
      "support"?: {
        "concepts"?: [ { "id": string, "title": string, "summary": string } ],
        "practiceKatas"?: [ { "id": string, "title": string, "estimateMin": number } ],
        "allowedResources"?: string[]
      },
      "reflection"?: { "prompt": string, "moodCheck"?: boolean }
    }
  ],
  "microTasks": [
    {
      "id": string,
      "projectId": string (must match a project id),
      "title": string,
      "type": "concept" | "practice" | "project" | "assessment" | "reflection",
      "estimatedMinutes": number (15..180),
      "instructions": string,
      "acceptanceTest": { "type": "checklist" | "unit_tests" | "quiz" | "demo", "spec": string | string[] },
      "resources"?: string[]
    }
  ] (>= 3),
  "portfolioCards"?: [
    { "projectId": string, "cover"?: string, "headline": string, "badges"?: string[], "links"?: { "repo"?: string, "demo"?: string, "video"?: string } }
  ],
  "adaptationNotes": string
}"""

SKELETON_RULES = """MODE: skeleton
- lengthDays MUST be 1.
- Produce exactly ONE project and exactly 3 microTasks.
- The first task frames the sprint, the second ships the core slice, the third packages evidence and reflection."""

EXPANSION_RULES = """MODE: expansion
- The CURRENT PLAN below is the starting point. Keep every existing project and microTask unchanged and in order.
- Append new microTasks after the existing ones; never remove or rename existing ids.
- lengthDays MUST NOT be smaller than the current plan's lengthDays.
- totalEstimatedHours MUST NOT be smaller than the current plan's totalEstimatedHours."""


def _section(title: str, value: Any) -> list[str]:
    return ["", f"{title}:", json.dumps(value, indent=2, ensure_ascii=False)]


def build_planner_prompt(payload: dict[str, Any]) -> tuple[str, str]:
    """Build system and user prompts for the remote planner.

    Args:
        payload: Remote planner payload (see build_planner_payload)

    Returns:
        (system_prompt, user_prompt)
    """
    prompt_parts = ["OBJECTIVE CONTEXT:", json.dumps(payload.get("objective"), indent=2, ensure_ascii=False)]
    prompt_parts.extend(_section("LEARNER PROFILE", payload.get("learnerProfile")))
    prompt_parts.extend(_section("ADDITIONAL CONTEXT", payload.get("context")))

    prompt_parts.append("")
    prompt_parts.append(f"PREFERRED LENGTH: {payload.get('preferLength') or 'auto'}")
    prompt_parts.append(f"RESPONSE LANGUAGE: {payload.get('userLanguage') or 'en'}")

    if payload.get("allowedResources"):
        prompt_parts.append("")
        prompt_parts.append("ALLOWED RESOURCES (reference only these):")
        prompt_parts.extend(f"- {resource}" for resource in payload["allowedResources"])

    if payload.get("previousSprint"):
        prompt_parts.extend(_section("PREVIOUS SPRINT", payload["previousSprint"]))

    if payload.get("customInstructions"):
        prompt_parts.append("")
        prompt_parts.append("CUSTOM INSTRUCTIONS:")
        prompt_parts.extend(f"- {instruction}" for instruction in payload["customInstructions"])

    prompt_parts.append("")
    if payload.get("mode") == "expansion":
        prompt_parts.append(EXPANSION_RULES)
        if payload.get("expansionGoal"):
            prompt_parts.extend(_section("EXPANSION GOAL", payload["expansionGoal"]))
        prompt_parts.extend(_section("CURRENT PLAN", payload.get("currentPlan")))
    else:
        prompt_parts.append(SKELETON_RULES)

    prompt_parts.append("")
    prompt_parts.append("Return ONLY valid JSON with no commentary. Schema is defined below.")
    prompt_parts.append(SCHEMA_PROMPT)

    return SYSTEM_PROMPT, "\n".join(prompt_parts)
