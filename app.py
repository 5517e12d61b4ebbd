"""Streamlit dashboard for jobradar."""
from __future__ import annotations

import os
import sys
from pathlib import Path

import pandas as pd
import streamlit as st

ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(ROOT))

from jobradar.config import ENV_PATH
from jobradar.context import AppContext, build_context
from jobradar.display import is_fallback_batch, reason_block
from jobradar.log import get_logger
from jobradar.models import ScoredPosting, SearchFilters, SearchRequest, SearchStrategy

log = get_logger(__name__)

# ── Constants ────────────────────────────────────────────────────────────

DATE_OPTIONS: dict[str, str] = {
    "any": "Any time",
    "today": "Past 24 hours",
    "3days": "Past 3 days",
    "week": "Past week",
    "month": "Past month",
}
JOB_TYPE_OPTIONS: dict[str, str] = {
    "any": "Any type",
    "full-time": "Full-time",
    "part-time": "Part-time",
    "contract": "Contract",
    "internship": "Internship",
}
REMOTE_OPTIONS: dict[str, str] = {"any": "Any", "remote": "Remote only"}

BADGES: dict[SearchStrategy, str] = {
    SearchStrategy.DIRECT_LISTING: "🎯 Direct ATS",
    SearchStrategy.INFORMAL_POST: "🤝 Hiring post",
    SearchStrategy.AGGREGATOR_SWEEP: "📋 Job board",
}

ENV_KEYS: tuple[str, ...] = ("GROQ_API_KEY", "SERPAPI_KEY", "GROQ_LLM_MODEL")

_GLASS_CSS = """
<style>
[data-testid="stAppViewContainer"] {
    background: linear-gradient(135deg, #e8eaf6 0%, #f3e5f5 40%, #e0f2f1 100%);
}
[data-testid="stSidebar"] {
    background: rgba(255,255,255,0.55);
    backdrop-filter: blur(16px);
    -webkit-backdrop-filter: blur(16px);
    border-right: 1px solid rgba(255,255,255,0.3);
}
.block-container { padding-top: 2rem; }
[data-testid="stMetric"],
[data-testid="stForm"],
[data-testid="stExpander"] {
    background: rgba(255,255,255,0.6);
    backdrop-filter: blur(12px);
    -webkit-backdrop-filter: blur(12px);
    border-radius: 12px;
    border: 1px solid rgba(255,255,255,0.4);
    box-shadow: 0 4px 16px rgba(0,0,0,0.06);
}
[data-testid="stMetric"] { padding: 0.75rem 1rem; }
.stButton > button[kind="primary"] { border-radius: 8px; font-weight: 600; }
h1, h2, h3 { color: #1a1a2e; }
.match-reason {
    padding: 0.5rem 0.75rem; background: rgba(39,174,96,0.08);
    border-left: 3px solid #27ae60; border-radius: 6px;
    font-size: 0.9rem; color: #333;
}
.match-fallback {
    padding: 0.5rem 0.75rem; background: rgba(231,76,60,0.08);
    border-left: 3px solid #e74c3c; border-radius: 6px;
    font-size: 0.9rem; color: #333;
}
</style>
"""

# ── Helpers ──────────────────────────────────────────────────────────────


@st.cache_resource
def _context() -> AppContext:
    return build_context()


def _load_env() -> dict[str, str]:
    values: dict[str, str] = {}
    if ENV_PATH.exists():
        for line in ENV_PATH.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                k, _, v = line.partition("=")
                values[k.strip()] = v.strip()
    return values


def _save_env(values: dict[str, str]) -> None:
    template_path = ROOT / ".env.example"

    lines: list[str] = []
    written: set[str] = set()

    if template_path.exists():
        for line in template_path.read_text(encoding="utf-8").splitlines():
            stripped = line.strip()
            if stripped and not stripped.startswith("#") and "=" in stripped:
                k = stripped.partition("=")[0].strip()
                lines.append(f"{k}={values.get(k, '')}")
                written.add(k)
            else:
                lines.append(line)

    for k, v in values.items():
        if k not in written:
            lines.append(f"{k}={v}")

    ENV_PATH.write_text("\n".join(lines) + "\n", encoding="utf-8")


def _split(text: str) -> list[str]:
    return [part.strip() for part in text.replace("\n", ",").split(",") if part.strip()]


def _check(label: str, ok: bool) -> str:
    icon = "✅" if ok else "⬜"
    return f"{icon}  {label}"


def _score_color(score: int) -> str:
    if score >= 80:
        return "green"
    if score >= 60:
        return "orange"
    return "red"


def _render_job(item: ScoredPosting, key_prefix: str, is_fallback: bool = False) -> None:
    job = item.posting
    header = f"**{job.title or 'Untitled'}** — {job.company_name or 'Unknown'}"
    with st.container(border=True):
        c1, c2 = st.columns([5, 1])
        with c1:
            st.markdown(header)
            meta = [BADGES[job.discovery_method], job.location or "—"]
            if job.extensions.posted_at:
                meta.append(job.extensions.posted_at)
            if job.extensions.salary:
                meta.append(job.extensions.salary)
            st.caption("  ·  ".join(meta))
        with c2:
            st.markdown(f"### :{_score_color(item.score)}[{item.score}%]")

        st.markdown(reason_block(item.reason, is_fallback), unsafe_allow_html=True)

        if job.description:
            with st.expander("Description"):
                st.write(job.description)

        b1, b2 = st.columns(2)
        with b1:
            link = job.persist_key
            if link.startswith("http"):
                st.link_button(job.apply_options[0].title if job.apply_options else "Open", link,
                               use_container_width=True)
        with b2:
            if item.store_id and st.button(
                "Generate prep guide", key=f"{key_prefix}-prep-{item.store_id}", use_container_width=True,
            ):
                _generate_prep(item.store_id)


def _generate_prep(job_row_id: str) -> None:
    from jobradar.prep import generate_prep_guide

    with st.spinner("Researching the company and building your study guide…"):
        result = generate_prep_guide(_context(), job_row_id)
    if result["success"]:
        st.session_state["open_interview"] = result["interview_id"]
        st.success("Study guide ready — open **Interviews** to review it.")
    else:
        st.error(f"Prep generation failed: {result['error']}")


def _results_table(jobs: list[ScoredPosting]) -> None:
    df = pd.DataFrame([
        {
            "title": s.posting.title,
            "company": s.posting.company_name,
            "score": s.score,
            "source": s.posting.discovery_method.label,
            "url": s.posting.persist_key,
        }
        for s in jobs
    ])
    st.dataframe(
        df,
        use_container_width=True,
        column_config={
            "url": st.column_config.LinkColumn("Link"),
            "score": st.column_config.ProgressColumn("Score", min_value=0, max_value=100, format="%d%%"),
        },
        hide_index=True,
    )


# ── Page: Resume ─────────────────────────────────────────────────────────


def page_resume() -> None:
    st.header("Resume")
    st.write("Upload your resume — its skills and experience drive job scoring and interview prep.")

    ctx = _context()
    uploaded = st.file_uploader("Drop your resume here (PDF, DOCX, or TXT)", type=["pdf", "docx", "txt"])
    if uploaded and st.button("Analyze resume", type="primary", use_container_width=True):
        from jobradar.resume_parser import upload_resume

        with st.spinner("Analyzing your resume…"):
            result = upload_resume(ctx, uploaded.name, uploaded.getvalue())
        if result["success"]:
            st.success("Resume parsed successfully!")
        else:
            st.error(result["error"])

    resume = ctx.store.latest_resume(ctx.user_id)
    if not resume:
        st.info("No resume on file yet.")
        return

    data = resume["structured_data"]
    st.divider()
    st.subheader("Extracted Profile")
    st.caption(f"From **{resume['original_name']}** · uploaded {resume['created_at'][:16]}")

    contact = data.get("contactInfo", {})
    c1, c2, c3 = st.columns(3)
    c1.metric("Email", contact.get("email") or "—")
    c2.metric("Phone", contact.get("phone") or "—")
    c3.metric("Roles held", len(data.get("experience", [])))

    if data.get("summary"):
        st.markdown(data["summary"])

    prof = data.get("technicalProficiency", [])
    if prof:
        st.markdown("**Technical proficiency**")
        st.dataframe(pd.DataFrame(prof), use_container_width=True, hide_index=True)

    for exp in data.get("experience", []):
        with st.expander(f"{exp.get('role', '')} — {exp.get('company', '')} ({exp.get('duration', '')})"):
            for a in exp.get("keyAchievements", []):
                st.markdown(f"- {a}")


# ── Page: Job Search ─────────────────────────────────────────────────────


def _history_sidebar(ctx: AppContext) -> None:
    from jobradar.pipeline import delete_search, get_search_matches, list_searches

    with st.sidebar:
        st.divider()
        st.markdown("**Search history**")
        sessions = list_searches(ctx)
        if not sessions:
            st.caption("No saved searches yet.")
            return
        for s in sessions[:15]:
            c1, c2 = st.columns([4, 1])
            with c1:
                if st.button(s.label, key=f"hist-{s.id}", use_container_width=True):
                    result = get_search_matches(ctx, s.id)
                    if result["success"]:
                        st.session_state["results"] = {
                            "jobs": result["jobs"],
                            "search_id": s.id,
                            "is_fallback": is_fallback_batch(result["jobs"]),
                        }
                    else:
                        st.error(result["error"])
            with c2:
                if st.button("🗑️", key=f"del-{s.id}"):
                    result = delete_search(ctx, s.id)
                    if result["success"]:
                        if st.session_state.get("results", {}).get("search_id") == s.id:
                            st.session_state.pop("results", None)
                        st.rerun()
                    else:
                        st.error(result["error"])


def page_search() -> None:
    from jobradar.pipeline import run_search
    from jobradar.resume_parser import skill_names

    st.header("Job Search")
    ctx = _context()
    _history_sidebar(ctx)

    if ctx.search is None:
        st.warning("Add a SerpAPI key in **Settings** to search for jobs.")
    if ctx.llm is None:
        st.warning("Add a Groq API key in **Settings**; searches need it to score jobs.")

    resume = ctx.store.latest_resume(ctx.user_id)
    profile = resume["structured_data"] if resume else None
    default_skills = ", ".join(skill_names(profile)[:5])

    with st.form("search_form"):
        c1, c2, c3 = st.columns(3)
        with c1:
            roles_text = st.text_input("Target roles", placeholder="e.g. Backend Engineer, SRE")
        with c2:
            locations_text = st.text_input("Locations", value="Remote")
        with c3:
            keywords_text = st.text_input("Tech stack", value=default_skills, placeholder="e.g. Go, Kubernetes")

        f1, f2, f3, f4 = st.columns(4)
        with f1:
            date_posted = st.selectbox("Date posted", list(DATE_OPTIONS), format_func=DATE_OPTIONS.get)
        with f2:
            job_type = st.selectbox("Job type", list(JOB_TYPE_OPTIONS), format_func=JOB_TYPE_OPTIONS.get)
        with f3:
            remote = st.selectbox("Remote", list(REMOTE_OPTIONS), format_func=REMOTE_OPTIONS.get)
        with f4:
            salary_min = st.number_input("Min salary (USD)", 0, 1_000_000, 0, step=10_000)

        submitted = st.form_submit_button("Search", type="primary", use_container_width=True)

    if submitted:
        roles = _split(roles_text)
        if not roles:
            st.error("Add at least one target role.")
        else:
            request = SearchRequest(
                roles=roles,
                locations=_split(locations_text),
                keywords=_split(keywords_text),
                filters=SearchFilters(
                    date_posted=date_posted,
                    job_type=job_type,
                    remote=remote,
                    salary_min=int(salary_min) or None,
                ),
            )
            with st.status("Running search…", expanded=True) as sw:
                sw.write(f"🔍 Searching for {' or '.join(request.roles)} in {' or '.join(request.locations)}…")
                if profile is None:
                    sw.write("⚠️ No resume on file — scoring without a profile.")
                outcome = run_search(ctx, request, profile=profile)
                if not outcome.success:
                    sw.update(label="Search failed", state="error")
                    st.error(outcome.error)
                else:
                    sw.write(f"✅ Found {len(outcome.jobs)} listings.")
                    if outcome.warning:
                        sw.write(f"⚠️ {outcome.warning}")
                    elif outcome.jobs:
                        sw.write(f"✨ Analysis complete! Top match: {outcome.jobs[0].score}%")
                    sw.update(label="Search complete", state="complete")
                    st.session_state["results"] = {
                        "jobs": outcome.jobs,
                        "search_id": outcome.search_id,
                        "is_fallback": outcome.is_fallback,
                    }

    results = st.session_state.get("results")
    if not results:
        st.info("No results yet. Configure a search above.")
        return

    jobs: list[ScoredPosting] = results["jobs"]
    st.divider()
    st.subheader(f"Results ({len(jobs)})")
    if not jobs:
        st.info("No jobs found. Try broader roles or fewer filters.")
        return

    tab_cards, tab_table = st.tabs(["Cards", "Table"])
    with tab_cards:
        for i, item in enumerate(jobs):
            _render_job(item, key_prefix=f"r{i}", is_fallback=results["is_fallback"])
    with tab_table:
        _results_table(jobs)


# ── Page: Interviews ─────────────────────────────────────────────────────


def _render_guide(guide: dict) -> None:
    culture = guide.get("company_culture", [])
    if culture:
        st.subheader("Company culture")
        for c in culture:
            st.markdown(f"- {c}")

    gaps = guide.get("technical_gaps", [])
    if gaps:
        st.subheader("Technical gaps")
        for g in gaps:
            st.markdown(f"- **{g['skill']}** — {g['missing_reason']}")

    questions = guide.get("questions", [])
    if questions:
        st.subheader("Likely questions")
        for i, q in enumerate(questions, 1):
            with st.expander(f"{i}. {q['question']}  ·  {q['difficulty']}  ·  {q['topic']}"):
                for p in q["suggested_answer_points"]:
                    st.markdown(f"- {p}")
                st.caption(f"Source: {q['source']}")

    scenario = guide.get("simulated_scenario") or {}
    if scenario.get("title"):
        st.subheader("Simulated scenario")
        st.markdown(f"**{scenario['title']}**")
        st.write(scenario.get("description", ""))


def page_interviews() -> None:
    from jobradar.prep import delete_interviews, get_interview, list_interviews

    st.header("Interview Prep")
    ctx = _context()
    interviews = list_interviews(ctx)
    if not interviews:
        st.info("No study guides yet. Generate one from a job in **Job Search**.")
        return

    labels = {i["id"]: f"{i['title']} — {i.get('company') or '?'} ({i['created_at'][:10]})" for i in interviews}
    ids = list(labels)
    default = st.session_state.get("open_interview")
    selected = st.selectbox(
        "Study guide",
        ids,
        index=ids.index(default) if default in ids else 0,
        format_func=labels.get,
    )

    with st.expander("Delete guides"):
        to_delete = st.multiselect("Select guides to delete", ids, format_func=labels.get)
        if st.button("Delete selected", disabled=not to_delete):
            result = delete_interviews(ctx, to_delete)
            if result["success"]:
                st.success(f"Deleted {result['deleted']} guide(s).")
                st.session_state.pop("open_interview", None)
                st.rerun()
            else:
                st.error(f"Failed to delete interviews: {result['error']}")

    interview = get_interview(ctx, selected)
    if interview is None:
        st.warning("Guide not found.")
        return

    st.divider()
    st.markdown(f"## {interview['title']}")
    st.caption(f"{interview.get('company') or ''} · {interview['status']}")
    if interview["study_guide"]:
        _render_guide(interview["study_guide"])
    else:
        st.info("This interview has no study guide.")


# ── Page: Settings ───────────────────────────────────────────────────────


def page_settings() -> None:
    st.header("Settings")
    env = _load_env()

    with st.form("creds"):
        groq = st.text_input(
            "Groq API key",
            value=env.get("GROQ_API_KEY", ""),
            type="password",
            help="Powers resume parsing, job scoring and study guides. https://console.groq.com/keys",
        )
        serp = st.text_input(
            "SerpAPI key",
            value=env.get("SERPAPI_KEY", ""),
            type="password",
            help="Job discovery and company research. https://serpapi.com",
        )
        model = st.text_input("LLM model", value=env.get("GROQ_LLM_MODEL", ""), placeholder="llama-3.3-70b-versatile")

        if st.form_submit_button("Save", type="primary", use_container_width=True):
            env.update({"GROQ_API_KEY": groq, "SERPAPI_KEY": serp, "GROQ_LLM_MODEL": model})
            _save_env(env)
            for k in ENV_KEYS:
                os.environ[k] = env.get(k, "")
            _context.clear()
            st.success("Settings saved!")
            st.rerun()


# ── Main ─────────────────────────────────────────────────────────────────


def _sidebar_status() -> None:
    ctx = _context()
    with st.sidebar:
        st.markdown("**Status**")
        st.markdown(_check("Groq API key", ctx.llm is not None))
        st.markdown(_check("SerpAPI key", ctx.search is not None))
        st.markdown(_check("Resume uploaded", ctx.store.latest_resume(ctx.user_id) is not None))


def _wrap(page):
    def run() -> None:
        st.markdown(_GLASS_CSS, unsafe_allow_html=True)
        _sidebar_status()
        page()

    run.__name__ = page.__name__
    return run


pages = [
    st.Page(_wrap(page_search), title="Job Search", icon="🔍", url_path="search", default=True),
    st.Page(_wrap(page_resume), title="Resume", icon="📄", url_path="resume"),
    st.Page(_wrap(page_interviews), title="Interviews", icon="🎓", url_path="interviews"),
    st.Page(_wrap(page_settings), title="Settings", icon="⚙️", url_path="settings"),
]

nav = st.navigation(pages)
nav.run()
