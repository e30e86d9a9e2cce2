# dashboard/app.py
# Sales coaching assessment dashboard
#
#   streamlit run dashboard/app.py

import logging
from datetime import date

import streamlit as st
from dotenv import load_dotenv

from dashboard.components.charts import radar_chart, step_score_bar
from salescoach.config import settings
from salescoach.core.dependencies import (
    get_assessment_repository,
    get_rubric_provider,
    get_score_repository,
)
from salescoach.core.exceptions import (
    ConfigurationError,
    EntityNotFoundException,
    RepositoryException,
    RubricUnavailable,
)
from salescoach.services.report_generator import (
    NOTE_HEADINGS,
    benchmark_rows,
    generate_session_report,
    snapshot_to_frame,
)
from salescoach.services.session import AssessmentSession, coaching_history

load_dotenv()

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s | %(levelname)-8s | %(message)s',
    datefmt='%H:%M:%S',
)

st.set_page_config(page_title="Sales Coaching Assessment", layout="wide")

LEVEL_OPTIONS = {0: "Automatic", 1: "Learner", 2: "Qualified", 3: "Experienced", 4: "Master"}


@st.cache_resource
def load_rubric():
    return get_rubric_provider().get_rubric()


try:
    rubric = load_rubric()
except (RubricUnavailable, ConfigurationError) as e:
    st.error(f"Rubric could not be loaded: {e}")
    st.stop()

records = get_assessment_repository()
scores = get_score_repository()

# =====================================================================
# Sidebar: start or resume
# =====================================================================

with st.sidebar:
    st.header("Session")
    with st.form("start_session"):
        assessee = st.text_input("Coachee name")
        user_id = st.number_input("Coach id", min_value=1, value=1, step=1)
        context = st.text_area("Context", height=80)
        use_previous = st.checkbox("Start from previous session", value=True)
        started = st.form_submit_button("Start assessment")
    if started:
        if not assessee.strip():
            st.warning("Coachee name is required")
        else:
            try:
                session = AssessmentSession.start(
                    rubric, records, scores,
                    title=f"Assessment for {assessee.strip()} - {date.today().isoformat()}",
                    user_id=int(user_id),
                    assessee_name=assessee.strip(),
                    context=context or None,
                    use_previous=use_previous,
                )
                session.prefill_notes(records)
                st.session_state["session"] = session
            except RepositoryException as e:
                st.error(f"Could not create assessment: {e}")

    resume_id = st.number_input("Resume assessment id", min_value=0, value=0, step=1)
    if st.button("Resume") and resume_id:
        try:
            st.session_state["session"] = AssessmentSession.resume(rubric, records, scores, int(resume_id))
        except EntityNotFoundException:
            st.warning(f"Assessment {resume_id} not found")

    with st.expander("Coaching history"):
        try:
            history = coaching_history(records, page=1, page_size=10)
        except RepositoryException as e:
            st.error(f"Could not load history: {e}")
        else:
            st.caption(f"{history.total} assessments")
            for past in history.items:
                st.write(f"#{past.id} {past.assessee_name} ({past.status.value}) {past.created_at.date().isoformat()}")

session = st.session_state.get("session")
if session is None:
    st.title("Sales Coaching Assessment")
    st.info("Start or resume a session from the sidebar.")
    st.stop()

# =====================================================================
# Scoring
# =====================================================================

st.title(session.assessment.title)
if session.has_unsaved_changes:
    col_warn, col_retry = st.columns([4, 1])
    col_warn.warning(f"Not saved: behaviors {sorted(session.unsaved_behaviors)} steps {sorted(session.unsaved_steps)}")
    if col_retry.button("Retry"):
        session.retry_unsaved()
        st.rerun()

for step in rubric.steps:
    snap = session.snapshot
    header = (
        f"{step.order}. {step.title} - {snap.per_step_scores[step.id]} pts, "
        f"{snap.per_step_labels[step.id]} ({snap.per_step_progress[step.id]:.0f}%)"
    )
    with st.expander(header):
        current = session.overrides.get(step.id, 0)
        level = st.selectbox(
            "Manual level", options=list(LEVEL_OPTIONS), index=current,
            format_func=LEVEL_OPTIONS.get, key=f"override_{session.assessment.id}_{step.id}",
        )
        if level != current:
            session.set_step_override(step.id, level)

        for substep in step.substeps:
            st.markdown(f"**{substep.title}** - {snap.per_substep_labels[substep.id]}")
            for behavior in substep.behaviors:
                value = st.checkbox(
                    f"[L{behavior.proficiency_level}] {behavior.description}",
                    value=behavior.id in session.checked,
                    key=f"behavior_{session.assessment.id}_{behavior.id}",
                )
                session.toggle_behavior(behavior.id, value)

snapshot = session.snapshot

# =====================================================================
# Results
# =====================================================================

st.header("Results")
m1, m2, m3 = st.columns(3)
m1.metric("Total Score", snapshot.total_score)
m2.metric("Behaviors Observed", f"{snapshot.checked_count}/{snapshot.total_behaviors}")
m3.metric("Overall Level", snapshot.overall_label)

benchmark_level = st.slider("Benchmark level", 1, 4, settings.BENCHMARK_LEVEL)
rows = benchmark_rows(rubric, snapshot, benchmark_level)
c1, c2 = st.columns(2)
c1.plotly_chart(radar_chart(rows), width="stretch")
c2.plotly_chart(step_score_bar(rows), width="stretch")
st.dataframe(snapshot_to_frame(rubric, snapshot), width="stretch", hide_index=True)

# =====================================================================
# Coaching notes and export
# =====================================================================

st.header("Coaching Notes")
edited = {
    name: st.text_area(
        heading, value=getattr(session.notes, name) or "", key=f"note_{session.assessment.id}_{name}"
    )
    for name, heading in NOTE_HEADINGS
}
session.update_notes(**{name: value or None for name, value in edited.items()})

if st.button("Save and finalize"):
    try:
        session.finalize(records)
        st.success("Coaching session saved")
    except RepositoryException as e:
        st.error(f"Coaching notes could not be saved: {e}")

report = generate_session_report(rubric, snapshot, session.assessment, session.notes, session.overrides)
d1, d2 = st.columns(2)
d1.download_button("Download report (.md)", report, file_name=f"assessment_{session.assessment.id}.md")
d2.download_button(
    "Download scores (.csv)",
    snapshot_to_frame(rubric, snapshot).to_csv(index=False),
    file_name=f"assessment_{session.assessment.id}.csv",
)
with st.expander("Report preview"):
    st.markdown(report)
