"""Interview study guides: web research on the company, then LLM synthesis."""
from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from jobradar.context import AppContext
from jobradar.dispatcher import SearchClient
from jobradar.log import get_logger
from jobradar.retry import retry

log = get_logger(__name__)

STUDY_GUIDE = "study_guide"
NO_RESULTS = "No specific results found."
_SNIPPETS_PER_TOPIC = 5


@dataclass(frozen=True)
class ResearchTopic:
    category: str
    template: str

    def query(self, company: str, role: str) -> str:
        return self.template.format(company=company, role=role)


RESEARCH_TOPICS: tuple[ResearchTopic, ...] = (
    ResearchTopic(
        "Interview Experiences",
        'site:glassdoor.com OR site:reddit.com OR site:teamblind.com "{company}" "{role}" interview questions',
    ),
    ResearchTopic("Culture", '"{company}" engineering culture values principles'),
    ResearchTopic("News", '"{company}" recent news technology product launch'),
    ResearchTopic("Salary", '"{company}" "{role}" salary levels.fyi'),
)

_SYNTHESIS_PROMPT = """\
You are an Expert Career Coach and OSINT Analyst.

JOB DETAILS:
Title: {title}
Company: {company}
Description: {description}

CANDIDATE RESUME (Technical Proficiency):
{proficiency}

DEEP WEB RESEARCH ON COMPANY:
{research}

TASK:
Generate a highly specific, "insider" Study Guide for this interview.

CRITICAL RULES:
1. NO PLACEHOLDERS: Never use "[Insert info]" or "Search for X". If you don't find
   specific info, use your general knowledge of the industry/role to provide likely
   scenarios or best practices, and explicitly state "Based on industry standards
   for [Company Type]...".
2. USE REAL DATA: Incorporate the specific interview questions, values, and news
   found in the web research.
3. BE STRATEGIC: If the company is a startup, focus on speed/ownership. If big tech,
   focus on scale/process. Infer this from the research.

REQUIRED JSON STRUCTURE:
{{
  "company_culture": ["Specific Value 1", "Inferred Value 2"],
  "technical_gaps": [{{"skill": "Skill Name", "missing_reason": "Why it's needed vs what user has"}}],
  "questions": [
    {{
      "question": "Actual question found in research OR highly relevant technical question",
      "difficulty": "Easy/Medium/Hard",
      "topic": "Topic Name",
      "suggested_answer_points": ["Point 1", "Point 2"],
      "source": "Glassdoor/Reddit/Inferred"
    }}
  ],
  "simulated_scenario": {{"title": "Real-world Scenario", "description": "A specific problem this company likely faces"}}
}}

Return ONLY valid JSON.
"""


@retry(max_attempts=2, base_delay=1.5, retryable=(Exception,))
def _research(client: SearchClient, query: str, num: int) -> dict[str, Any]:
    return client.search("google", query, num=num)


def research_company(
    client: SearchClient, company: str, role: str, num: int = 5,
) -> list[tuple[ResearchTopic, str, list[str]]]:
    """Run every research query in parallel; a failed topic yields no snippets."""
    queries = [topic.query(company, role) for topic in RESEARCH_TOPICS]
    with ThreadPoolExecutor(max_workers=len(queries)) as pool:
        futures = [pool.submit(_research, client, q, num) for q in queries]
        results: list[tuple[ResearchTopic, str, list[str]]] = []
        for topic, query, future in zip(RESEARCH_TOPICS, queries, futures):
            try:
                raw = future.result()
            except Exception as exc:
                log.warning("Research %r failed: %s", topic.category, exc)
                results.append((topic, query, []))
                continue
            hits = raw.get("organic_results") if isinstance(raw, dict) else None
            snippets = [
                f"[Source: {h.get('title', '')}] {h.get('snippet', '')}"
                for h in (hits if isinstance(hits, list) else [])
                if isinstance(h, dict)
            ][:_SNIPPETS_PER_TOPIC]
            log.debug("Research %r: %d snippets", topic.category, len(snippets))
            results.append((topic, query, snippets))
    return results


def build_research_context(research: list[tuple[ResearchTopic, str, list[str]]]) -> str:
    blocks = []
    for topic, query, snippets in research:
        body = "\n".join(snippets) if snippets else NO_RESULTS
        blocks.append(f"### {topic.category}\nQuery: {query}\nResults:\n{body}")
    return "\n\n".join(blocks)


def normalize_guide(data: dict[str, Any]) -> dict[str, Any]:
    """Coerce the LLM output into the study-guide shape the UI renders."""
    def _dicts(value: Any) -> list[dict[str, Any]]:
        return [v for v in value if isinstance(v, dict)] if isinstance(value, list) else []

    culture = data.get("company_culture")
    scenario = data.get("simulated_scenario")
    questions = []
    for q in _dicts(data.get("questions")):
        points = q.get("suggested_answer_points")
        questions.append({
            "question": str(q.get("question", "")),
            "difficulty": str(q.get("difficulty", "Medium")),
            "topic": str(q.get("topic", "")),
            "suggested_answer_points": [str(p) for p in points] if isinstance(points, list) else [],
            "source": str(q.get("source", "Inferred")),
        })
    return {
        "company_culture": [str(c) for c in culture] if isinstance(culture, list) else [],
        "technical_gaps": [
            {"skill": str(g.get("skill", "")), "missing_reason": str(g.get("missing_reason", ""))}
            for g in _dicts(data.get("technical_gaps"))
        ],
        "questions": questions,
        "simulated_scenario": {
            "title": str(scenario.get("title", "")),
            "description": str(scenario.get("description", "")),
        } if isinstance(scenario, dict) else {"title": "", "description": ""},
    }


def generate_prep_guide(ctx: AppContext, job_id: str) -> dict[str, Any]:
    """Research the job's company, synthesize a study guide and save it.

    *job_id* is the jobs-table row id. Returns ``{"success": True,
    "interview_id": ...}`` or ``{"success": False, "error": ...}``.
    """
    if ctx.search is None or ctx.llm is None:
        return {"success": False, "error": "API configuration error"}

    store = ctx.store
    user_id = ctx.user_id
    try:
        job = store.get_job(job_id)
        if job is None:
            return {"success": False, "error": "Job not found"}
        resume = store.latest_resume(user_id)
        if resume is None:
            return {"success": False, "error": "Resume not found. Please upload a resume first."}

        company, role = job["company"], job["title"]
        log.info("Researching %s for %s...", company, role)
        research = research_company(ctx.search, company, role, num=ctx.settings.research_results)

        log.info("Synthesizing study guide...")
        proficiency = resume["structured_data"].get("technicalProficiency") or []
        prompt = _SYNTHESIS_PROMPT.format(
            title=role,
            company=company,
            description=(job.get("description") or "")[:4000],
            proficiency=json.dumps(proficiency, indent=2),
            research=build_research_context(research),
        )
        guide = normalize_guide(ctx.llm.complete_json(prompt, max_tokens=4000, temperature=0.4))

        match = store.find_match(user_id, job_id)
        if match is None:
            match_id = store.upsert_match(user_id, job_id, 0, "Manual Prep Generation", None)
        else:
            match_id = match["id"]
        store.set_match_status(match_id, "interviewing")

        interview_id = store.create_interview(user_id, match_id, role, company)
        store.save_prep_material(interview_id, STUDY_GUIDE, guide)
    except Exception as exc:
        log.error("Generate prep error: %s", exc)
        return {"success": False, "error": str(exc)}

    log.info("Study guide ready — interview %s", interview_id)
    return {"success": True, "interview_id": interview_id}


def list_interviews(ctx: AppContext) -> list[dict[str, Any]]:
    return ctx.store.list_interviews(ctx.user_id)


def get_interview(ctx: AppContext, interview_id: str) -> dict[str, Any] | None:
    """The interview with its study guide under ``"study_guide"`` (or ``None``)."""
    interview = ctx.store.get_interview(ctx.user_id, interview_id)
    if interview is None:
        return None
    guides = [m["content"] for m in interview["prep_materials"] if m["type"] == STUDY_GUIDE]
    interview["study_guide"] = guides[-1] if guides else None
    return interview


def delete_interviews(ctx: AppContext, interview_ids: list[str]) -> dict[str, Any]:
    try:
        deleted = ctx.store.delete_interviews(ctx.user_id, interview_ids)
    except Exception as exc:
        log.error("Error deleting interviews: %s", exc)
        return {"success": False, "error": str(exc)}
    log.info("Deleted %d interview(s)", deleted)
    return {"success": True, "deleted": deleted}
