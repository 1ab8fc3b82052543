import logging
from datetime import date

import streamlit as st

from grade_tracker.calendar_view import (
    DAY_NAMES,
    date_key,
    events_by_date,
    month_grid,
    month_title,
    shift_month,
)
from grade_tracker.config import configure_logging, load_settings
from grade_tracker.grade_engine import (
    classify_degree,
    effective_module_score,
    format_percent,
    module_source_label,
    overall_degree_average,
    target_grade_needed,
    year_average,
)
from grade_tracker.io_csv import (
    EXPORT_FILE_NAME,
    export_csv,
    read_csv_upload,
    records_from_frame,
    validate_export_csv,
)
from grade_tracker.records import (
    RecordNotFound,
    add_assessment,
    add_module,
    add_year,
    assessments_from_frame,
    assessments_to_frame,
    delete_module,
    delete_year,
    find_module,
    find_year,
    update_module,
    update_year,
)
from grade_tracker.storage import JsonStore, load_theme, load_years, save_theme, try_save_years
from grade_tracker.themes import THEMES, coloured, get_theme

logger = logging.getLogger("grade_tracker.app")

settings = load_settings()
configure_logging(settings)
store = JsonStore(settings.data_file)

# ------------------------
# Streamlit UI
# ------------------------

st.set_page_config(
    page_title="Grades Tracker | Module, Year & Degree Averages",
    page_icon="🎓",
    layout="wide",
)

# ------------------------
# Session state (the caller-owned record)
# ------------------------

if "years" not in st.session_state:
    st.session_state["years"] = load_years(store)
    st.session_state["theme"] = load_theme(store)
    st.session_state["editor_version"] = 0
    st.session_state["delete_request"] = None
    st.session_state["save_error"] = None
    today = date.today()
    st.session_state["calendar_month"] = (today.year, today.month)


def k(*parts) -> str:
    # widget keys change after every save so forms re-seed from the record
    return "_".join(str(p) for p in parts) + f"_v{st.session_state['editor_version']}"


def commit(years) -> bool:
    st.session_state["years"] = years
    st.session_state["editor_version"] += 1
    # kept in session state so the message outlives a rerun
    st.session_state["save_error"] = try_save_years(store, years)
    return st.session_state["save_error"] is None


def on_theme_change():
    try:
        save_theme(store, st.session_state["theme"])
    except OSError as e:
        logger.error("Saving theme failed: %s", e)
        st.error(f"Could not save your theme: {e}")


def on_add_year():
    commit(add_year(st.session_state["years"]))


def on_add_module(year_id):
    commit(add_module(st.session_state["years"], year_id))


def on_add_assessment(year_id, module_id):
    commit(add_assessment(st.session_state["years"], year_id, module_id))


def request_delete(kind, year_id, module_id=None):
    st.session_state["delete_request"] = {"kind": kind, "year_id": year_id, "module_id": module_id}


def cancel_delete():
    st.session_state["delete_request"] = None


def confirm_delete():
    request = st.session_state["delete_request"]
    st.session_state["delete_request"] = None
    if request is None:
        return
    years = st.session_state["years"]
    try:
        if request["kind"] == "year":
            commit(delete_year(years, request["year_id"]))
        else:
            commit(delete_module(years, request["year_id"], request["module_id"]))
    except RecordNotFound as e:
        logger.info("Nothing to delete, %s %s is already gone", request["kind"], e)


def move_month(delta):
    y, m = st.session_state["calendar_month"]
    st.session_state["calendar_month"] = shift_month(y, m, delta)


years = st.session_state["years"]
t = get_theme(st.session_state["theme"])

st.title(t["title"])
st.write(t["subtitle"])

st.radio(
    "Theme",
    list(THEMES.keys()),
    format_func=lambda key: THEMES[key]["button"],
    horizontal=True,
    key="theme",
    on_change=on_theme_change,
)

# ------------------------
# Save errors and delete confirmation
# ------------------------

if st.session_state.get("save_error"):
    st.error(f"Could not save your data: {st.session_state['save_error']}")


def delete_prompt(request) -> str:
    try:
        if request["kind"] == "year":
            name = find_year(years, request["year_id"])["name"]
        else:
            name = find_module(years, request["year_id"], request["module_id"])["name"]
    except RecordNotFound:
        return f"Are you sure you want to delete this {request['kind']}?"
    return f'Are you sure you want to delete the {request["kind"]} "{name or "Unnamed"}"?'


request = st.session_state["delete_request"]
if request is not None:
    st.warning(delete_prompt(request))
    c1, c2, _ = st.columns([1, 1, 6])
    with c1:
        st.button("Cancel", on_click=cancel_delete, key="cancel_delete")
    with c2:
        st.button("Delete", type="primary", on_click=confirm_delete, key="confirm_delete")

# ------------------------
# Overall degree result
# ------------------------

st.markdown("---")
st.subheader(t["overall_title"])

overall = overall_degree_average(years)

col1, col2, col3 = st.columns(3)
with col1:
    st.metric(t["overall_label"], format_percent(overall))
with col2:
    st.metric("Classification", classify_degree(overall))
with col3:
    weighting_total = sum(y["weighting"] or 0 for y in years if (y["weighting"] or 0) > 0)
    st.metric("Total year weighting", f"{weighting_total:g}%")

feedback = t["feedback"](overall)
if feedback:
    st.markdown(coloured(t, overall, feedback))

a1, a2, a3 = st.columns(3)
with a1:
    st.button("Add Academic Year", type="primary", on_click=on_add_year, key="add_year")
with a2:
    show_calendar = st.toggle("View Calendar", key="calendar_open")
with a3:
    st.download_button(
        "Export to CSV",
        data=export_csv(years),
        file_name=EXPORT_FILE_NAME,
        mime="text/csv",
        key="export_csv",
    )

with st.expander("Import from CSV"):
    uploaded = st.file_uploader(
        "Upload a CSV exported from this tracker (Year, Module, ECTS, ...)",
        type=["csv"],
        key="import_csv",
    )
    if uploaded is not None:
        try:
            imported = records_from_frame(validate_export_csv(read_csv_upload(uploaded)))
        except ValueError as e:
            logger.warning("CSV import rejected: %s", e)
            st.error(f"CSV error: {e}")
        else:
            n_modules = sum(len(y["modules"]) for y in imported)
            st.caption(f"Found {len(imported)} years and {n_modules} modules.")
            if st.button("Replace my data with this CSV", key="import_confirm"):
                if commit(imported):
                    st.rerun()

# ------------------------
# Calendar
# ------------------------

if show_calendar:
    st.markdown("---")
    cal_year, cal_month = st.session_state["calendar_month"]
    events = events_by_date(years)

    n1, n2, n3 = st.columns([1, 6, 1])
    with n1:
        st.button("‹", on_click=move_month, args=(-1,), key="cal_prev")
    with n2:
        st.markdown(f"### {month_title(cal_year, cal_month)}")
    with n3:
        st.button("›", on_click=move_month, args=(1,), key="cal_next")

    for col, day_name in zip(st.columns(7), DAY_NAMES):
        col.markdown(f"**{day_name}**")

    today = date.today()
    for week in month_grid(cal_year, cal_month):
        for col, day in zip(st.columns(7), week):
            if day == 0:
                continue
            label = f"**{day}**"
            if date(cal_year, cal_month, day) == today:
                label = f":blue-background[**{day}**]"
            lines = [label]
            for event in events.get(date_key(cal_year, cal_month, day), []):
                title = event["assessment"].get("title") or "Untitled"
                lines.append(f"- {title} _({event['module_name']})_")
            col.markdown("\n".join(lines))

# ------------------------
# Years, modules and assessments
# ------------------------

for year in years:
    year_id = year["id"]
    year_avg = year_average(year)

    st.markdown("---")
    with st.expander(
        f"{year['name']}  ·  {t['year_avg_label']}: {format_percent(year_avg)}",
        expanded=not year.get("collapsed", False),
    ):
        with st.form(k("year_form", year_id)):
            c1, c2, c3 = st.columns([3, 2, 1])
            with c1:
                name = st.text_input("Year name", value=year["name"], key=k("year_name", year_id))
            with c2:
                weighting = st.number_input(
                    f"{year['name']} Wt (%)",
                    min_value=0.0,
                    max_value=100.0,
                    step=0.5,
                    value=float(max(0.0, min(100.0, year["weighting"] or 0.0))),
                    key=k("year_weighting", year_id),
                )
            with c3:
                collapsed = st.checkbox(
                    "Collapsed", value=year.get("collapsed", False), key=k("year_collapsed", year_id)
                )
            if st.form_submit_button("Save year"):
                if commit(update_year(years, year_id, name=name, weighting=weighting, collapsed=collapsed)):
                    st.rerun()

        st.markdown("**Module Performance Summary**")
        if not year["modules"]:
            st.caption("No modules added yet.")
        for module in year["modules"]:
            score = effective_module_score(module)
            st.markdown(
                f"{module['name'] or 'Unnamed module'}: {coloured(t, score, format_percent(score))}"
            )

        for module in year["modules"]:
            module_id = module["id"]
            score = effective_module_score(module)

            with st.container(border=True):
                h1, h2, h3 = st.columns([4, 3, 1])
                with h1:
                    st.markdown(f"#### {module['name'] or 'Unnamed module'}")
                with h2:
                    st.markdown(
                        f"{t['module_score_label']}: **{coloured(t, score, format_percent(score))}** "
                        f"{module_source_label(module)}"
                    )
                with h3:
                    st.button(
                        "✕",
                        key=k("delete_module", module_id),
                        help="Delete module",
                        on_click=request_delete,
                        args=("module", year_id, module_id),
                    )

                with st.form(k("module_form", module_id)):
                    c1, c2, c3 = st.columns(3)
                    with c1:
                        module_name = st.text_input(
                            "Module name", value=module["name"], key=k("module_name", module_id)
                        )
                    with c2:
                        ects = st.number_input(
                            "ECTS",
                            min_value=0.0,
                            step=0.5,
                            value=float(max(0.0, module["ects"] or 0.0)),
                            key=k("module_ects", module_id),
                        )
                    with c3:
                        moderated = module["moderated_score"]
                        moderated_text = st.text_input(
                            "Final Score (%)",
                            value="" if moderated is None else f"{moderated:g}",
                            help="Enter your official moderated score here to override "
                                 "the calculated average for this module.",
                            key=k("module_moderated", module_id),
                        )

                    edited_df = st.data_editor(
                        assessments_to_frame(module),
                        key=k("assessments", module_id),
                        num_rows="dynamic",
                        use_container_width=True,
                        hide_index=True,
                        column_config={
                            "id": None,
                            "Title": st.column_config.TextColumn("Title"),
                            "Due Date": st.column_config.DateColumn("Due Date", format="YYYY-MM-DD"),
                            "Weight (%)": st.column_config.NumberColumn(
                                "Weight (%)", min_value=0.0, max_value=100.0, step=0.5, format="%.1f"
                            ),
                            "Grade (%)": st.column_config.NumberColumn(
                                "Grade (%)", min_value=0.0, max_value=100.0, step=0.1, format="%.1f"
                            ),
                        },
                    )

                    if st.form_submit_button("Save module"):
                        saved = commit(
                            update_module(
                                years,
                                year_id,
                                module_id,
                                name=module_name,
                                ects=ects,
                                moderated_score=moderated_text,
                                assessments=assessments_from_frame(edited_df),
                            )
                        )
                        if saved:
                            st.rerun()

                st.markdown("**Target Grade Calculator**")
                t1, t2 = st.columns(2)
                with t1:
                    st.markdown(f"{t['target1_label']}: Need **{target_grade_needed(module, t['target1'])}**")
                with t2:
                    st.markdown(f"{t['target2_label']}: Need **{target_grade_needed(module, t['target2'])}**")

                st.button(
                    "Add Assessment",
                    key=k("add_assessment", module_id),
                    on_click=on_add_assessment,
                    args=(year_id, module_id),
                )

        b1, b2, _ = st.columns([1, 1, 4])
        with b1:
            st.button("Add Module", key=k("add_module", year_id), on_click=on_add_module, args=(year_id,))
        with b2:
            st.button(
                "Delete year",
                key=k("delete_year", year_id),
                on_click=request_delete,
                args=("year", year_id),
            )

if not years:
    st.info("Click **Add Academic Year** to get started.")


st.header("FAQ")

st.subheader("How is my degree average calculated?")
st.write(
    "Each module score is the weight-averaged grade of its graded assessments, or your "
    "moderated final score when you enter one. A year average weights module scores by ECTS, "
    "and the degree average weights year averages by the year weightings above."
)

st.subheader("Why doesn't a module with a score of 0 count towards my year?")
st.write(
    "Modules without any grades yet score 0, so modules on 0 are left out of the year "
    "average until they have a positive score."
)

st.subheader("Where is my data stored?")
st.write(
    "Your years, modules and assessments are saved to a JSON file on the machine running "
    "this app. Nothing is sent anywhere else. Everyone using the same running app shares "
    "that one file, so run your own copy. Use **Export to CSV** to keep a copy."
)
