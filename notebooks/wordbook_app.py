import marimo

__generated_with = "0.13.10"
app = marimo.App(width="full", app_title="Wordbook")


# ---------------------------------------------------------------------------
# Bootstrap: settings, coordinator, session
# ---------------------------------------------------------------------------


@app.cell
def _setup():
    import sys as _sys
    from pathlib import Path as _Path

    _ROOT = _Path(__file__).parent.parent
    _SRC = _ROOT / "src"

    if str(_SRC) not in _sys.path:
        _sys.path.insert(0, str(_SRC))

    from wordbook import NotebookSession, RemoteCredentials, build_coordinator, load_settings

    coordinator = build_coordinator(load_settings())
    session = NotebookSession(coordinator)
    session.start()

    return RemoteCredentials, coordinator, session


@app.cell
def _imports():
    import marimo as mo

    return (mo,)


@app.cell
def _state(mo):
    revision = mo.state(0)
    return (revision,)


# ---------------------------------------------------------------------------
# Notebook table
# ---------------------------------------------------------------------------


@app.cell
def _table(mo, session, revision):
    revision[0]  # noqa: B018  (re-run after every mutation)

    if len(session) == 0:
        table_panel = mo.callout(
            mo.md("Your notebook is empty. Save a word from a search to start."),
            kind="info",
        )
        entry_table = None
    else:
        entry_table = mo.ui.table(session.frame(), selection="multi")
        table_panel = mo.vstack(
            [mo.md(f"## Notebook  _({len(session)} entries)_"), entry_table]
        )
    return entry_table, table_panel


@app.cell
def _remove(mo, session, entry_table, revision):
    _set_revision = revision[1]

    def _remove_selected(_):
        if entry_table is None:
            return
        for row in entry_table.value.to_dicts():
            session.remove(row["id"])
        _set_revision(lambda n: n + 1)

    remove_btn = mo.ui.button(label="Remove selected", kind="danger", on_click=_remove_selected)
    return (remove_btn,)


# ---------------------------------------------------------------------------
# Flashcards
# ---------------------------------------------------------------------------


@app.cell
def _flashcards(mo, session, revision):
    revision[0]  # noqa: B018

    cards = []
    for entry in session.entries:
        preview = entry.preview
        back = (
            mo.md(f"_{preview.sentence}_  \n{preview.translation}")
            if preview
            else mo.md("_No examples._")
        )
        cards.append(
            mo.vstack(
                [mo.md(f"### {entry.word}"), mo.md(entry.definition), back],
                style={
                    "border": "1px solid #555",
                    "border-radius": "6px",
                    "padding": "8px",
                    "min-width": "200px",
                },
            )
        )
    flashcards_panel = (
        mo.hstack(cards, gap="8px", wrap=True, align="start") if cards else mo.md("_No cards yet._")
    )
    return (flashcards_panel,)


# ---------------------------------------------------------------------------
# Import / export
# ---------------------------------------------------------------------------


@app.cell
def _files(mo):
    upload = mo.ui.file(filetypes=[".json"], label="Import backup")
    export_btn = mo.ui.run_button(label="Export notebook")
    return export_btn, upload


@app.cell
def _files_actions(mo, session, revision, upload, export_btn):
    import tempfile
    from pathlib import Path

    from wordbook.errors import InvalidFormat

    _set_revision = revision[1]
    message = mo.md("")
    if upload.value:
        with tempfile.TemporaryDirectory() as tmp:
            target = Path(tmp) / upload.name()
            target.write_bytes(upload.contents())
            try:
                imported = session.replace_from_file(target)
            except InvalidFormat as exc:
                message = mo.callout(mo.md(f"Import failed: {exc}"), kind="danger")
            else:
                message = mo.callout(mo.md(f"Imported {len(imported)} entries."), kind="success")
                _set_revision(lambda n: n + 1)
    elif export_btn.value:
        path = session.export()
        message = mo.callout(mo.md(f"Exported to `{path}`"), kind="success")

    files_panel = mo.vstack([mo.hstack([upload, export_btn], gap="8px"), message])
    return (files_panel,)


# ---------------------------------------------------------------------------
# Notion settings
# ---------------------------------------------------------------------------


@app.cell
def _notion(mo):
    form = (
        mo.md("{api_key}\n\n{database_id}")
        .batch(
            api_key=mo.ui.text(kind="password", label="Notion API key", full_width=True),
            database_id=mo.ui.text(label="Database ID", full_width=True),
        )
        .form(submit_button_label="Save Notion settings")
    )
    return (form,)


@app.cell
def _notion_apply(mo, coordinator, RemoteCredentials, form):
    if form.value:
        coordinator.configure_remote(
            RemoteCredentials(form.value["api_key"].strip(), form.value["database_id"].strip())
        )

    configured = coordinator.remote_credentials() is not None
    status = mo.md("Notion sync is **on**." if configured else "Notion sync is **off**.")
    notion_panel = mo.vstack([status, form])
    return (notion_panel,)


# ---------------------------------------------------------------------------
# Main layout
# ---------------------------------------------------------------------------


@app.cell
def _main_layout(mo, table_panel, remove_btn, flashcards_panel, files_panel, notion_panel):
    tabs = mo.ui.tabs(
        {
            "Notebook": mo.vstack([table_panel, remove_btn]),
            "Flashcards": flashcards_panel,
            "Backup": files_panel,
            "Notion": notion_panel,
        }
    )
    layout = mo.vstack([mo.md("# Wordbook"), tabs], gap="4px")
    return (layout,)


@app.cell
def _render(layout):
    layout  # noqa: B018 (marimo displays the last expression as cell output)
    return


if __name__ == "__main__":
    app.run()
