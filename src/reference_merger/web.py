"""FastAPI + Tailwind interface for the reference merger.

Run with:
    uvicorn reference_merger.web:app --reload
"""
from __future__ import annotations

from html import escape
from secrets import token_hex
from typing import Dict, List, Optional

from fastapi import FastAPI, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, Response

from .app import MergeSession
from .diffing import render_html
from .errors import EmptyInput, MergeFailure, UnresolvedConflict
from .models import ConflictGroup, MergeResult
from .options import MergeOptions

app = FastAPI(title="Reference Merger", description="Merge corrected references from the browser")

sessions: Dict[str, MergeSession] = {}

OPTION_LABELS = {
    "fuzzy_matching": "Numbered style (smart fingerprinting)",
    "include_unmatched_updates": "Add new orphans",
    "preserve_ids": "Preserve IDs",
    "renumber_internal": "Renumber internal IDs",
    "auto_sort": "Auto-sort additions",
    "ampersand_normalization": "Use &amp;amp; in labels",
}


def _layout(content: str) -> str:
    """Wrap provided content in a Tailwind-powered HTML page."""

    return f"""
    <!doctype html>
    <html lang=\"en\" class=\"h-full bg-gray-50\">
    <head>
        <meta charset=\"utf-8\" />
        <title>Reference Merger</title>
        <link href=\"https://cdn.jsdelivr.net/npm/tailwindcss@3.4.4/dist/tailwind.min.css\" rel=\"stylesheet\" />
    </head>
    <body class=\"min-h-full py-10\">
        <div class=\"max-w-6xl mx-auto px-4\">
            <div class=\"bg-white shadow rounded-lg p-6\">
                <h1 class=\"text-3xl font-semibold text-gray-900\">Reference Merger</h1>
                <p class=\"text-gray-600 mt-2\">Smart-merge corrections into existing lists using exact labels or fuzzy content fingerprinting.</p>
                {content}
            </div>
        </div>
    </body>
    </html>
    """


def _message(text: str, tone: str = "amber") -> str:
    return f'<div class="mt-6 p-4 rounded-md bg-{tone}-50 text-{tone}-800 text-sm">{escape(text)}</div>'


def _form(original: str = "", updated: str = "", options: Optional[MergeOptions] = None) -> str:
    options = options or MergeOptions()
    toggles = []
    for name, label in OPTION_LABELS.items():
        checked = "checked" if getattr(options, name) else ""
        toggles.append(
            f"""
            <label class=\"flex items-center gap-2 text-sm text-gray-700\">
                <input type=\"checkbox\" name=\"{name}\" value=\"1\" {checked} class=\"h-4 w-4 text-indigo-600 border-gray-300 rounded\" />
                {label}
            </label>
            """
        )
    return f"""
    <form method=\"post\" class=\"bg-gray-50 border border-gray-200 rounded-lg p-4 mt-6\">
        <div class=\"grid grid-cols-1 md:grid-cols-2 gap-4\">
            <div>
                <label class=\"block text-sm font-medium text-gray-700 mb-2\" for=\"original\">Original XML source</label>
                <textarea name=\"original\" required placeholder=\"Paste full article reference list...\" class=\"w-full h-56 border border-gray-300 rounded-md p-3 text-xs font-mono\">{escape(original)}</textarea>
            </div>
            <div>
                <label class=\"block text-sm font-medium text-gray-700 mb-2\" for=\"updated\">Updated corrections</label>
                <textarea name=\"updated\" required placeholder=\"Paste corrections or new items...\" class=\"w-full h-56 border border-gray-300 rounded-md p-3 text-xs font-mono\">{escape(updated)}</textarea>
            </div>
        </div>
        <div class=\"flex flex-wrap gap-4 mt-4\">{''.join(toggles)}</div>
        <div class=\"flex gap-3 mt-4\">
            <button formaction=\"/analyze\" class=\"px-4 py-2 bg-white border border-gray-300 rounded-md\">Analyze</button>
            <button formaction=\"/merge\" class=\"px-4 py-2 bg-indigo-600 text-white rounded-md shadow hover:bg-indigo-700\">Merge Updates</button>
        </div>
    </form>
    """


def _scan_log(session: MergeSession) -> str:
    rows = []
    for decision in session.display_order():
        rows.append(
            "<tr class=\"border-b border-gray-100\">"
            f"<td class=\"p-2 font-mono\">{escape(decision.display_label)}</td>"
            f"<td class=\"p-2\">{escape(decision.method_label())}</td>"
            f"<td class=\"p-2 uppercase text-xs\">{escape(decision.status.value.replace('_', ' '))}</td>"
            f"<td class=\"p-2 text-gray-500 italic\">{escape(decision.preview)}</td>"
            "</tr>"
        )
    return f"""
    <div class=\"mt-8\">
        <h2 class=\"text-xl font-semibold text-gray-800\">Scan Log</h2>
        <table class=\"w-full text-left text-xs mt-3\">
            <thead><tr><th class=\"p-2\">Ref</th><th class=\"p-2\">Method</th><th class=\"p-2\">Status</th><th class=\"p-2\">Preview</th></tr></thead>
            <tbody>{''.join(rows)}</tbody>
        </table>
    </div>
    """


def _conflict_form(token: str, groups: List[ConflictGroup]) -> str:
    blocks = []
    for group in groups:
        candidates = []
        for candidate in group.candidates:
            name = f"choice_{candidate.index}"
            candidates.append(
                f"""
                <div class=\"p-3 border border-gray-200 rounded-md mt-2\">
                    <div class=\"text-xs font-mono text-gray-400\">ID: {escape(candidate.record_id or 'N/A')} | Match: {candidate.score}%</div>
                    <div class=\"text-xs text-gray-700 italic\">{escape(candidate.preview)}</div>
                    <label class=\"text-xs mr-4\"><input type=\"radio\" name=\"{name}\" value=\"update\" required /> Update</label>
                    <label class=\"text-xs\"><input type=\"radio\" name=\"{name}\" value=\"ignore\" /> Ignore</label>
                </div>
                """
            )
        blocks.append(
            f"<div class=\"mt-4\"><div class=\"font-bold text-indigo-600 text-xs uppercase\">Target update: {escape(group.label)}</div>{''.join(candidates)}</div>"
        )
    return f"""
    <form action=\"/resolve/{token}\" method=\"post\" class=\"mt-8 bg-amber-50 border border-amber-100 rounded-lg p-4\">
        <h2 class=\"text-lg font-bold text-gray-800\">Resolve Ambiguous Matches</h2>
        <p class=\"text-sm text-gray-600\">Found multiple original references sharing the same label. Choose which one to update.</p>
        {''.join(blocks)}
        <button type=\"submit\" class=\"mt-4 px-6 py-2 bg-indigo-600 text-white rounded-md\">Apply Choices &amp; Merge</button>
    </form>
    """


def _result_block(token: str, result: MergeResult) -> str:
    return f"""
    <div class=\"mt-8\">
        <h2 class=\"text-xl font-semibold text-gray-800\">Merged XML</h2>
        <p class=\"text-sm text-gray-600\">{escape(result.message)} ({escape(result.diff_summary)})</p>
        <pre class=\"mt-3 bg-gray-900 text-green-100 p-4 rounded-lg whitespace-pre-wrap text-xs\">{escape(result.merged_document)}</pre>
        <a class=\"inline-flex mt-3 px-4 py-2 bg-emerald-600 text-white rounded-md shadow hover:bg-emerald-700\" href=\"/download/{token}\">Download merged XML</a>
    </div>
    <div class=\"mt-8\">
        <h2 class=\"text-xl font-semibold text-gray-800\">Diff View</h2>
        {render_html(result.diff_rows)}
    </div>
    """


async def _options_from_form(request: Request) -> MergeOptions:
    """Read the option checkboxes; an unchecked box is simply absent from the form."""
    form = await request.form()
    return MergeOptions.from_mapping({name: form.get(name, "") for name in OPTION_LABELS})


def _run_merge(token: str, session: MergeSession, resolutions: Optional[Dict[int, str]] = None) -> str:
    form = _form(session.original_document, session.updated_document, session.options)
    try:
        result = session.merge(resolutions)
    except UnresolvedConflict as exc:
        return _layout(form + _conflict_form(token, exc.groups))
    except (EmptyInput, MergeFailure, ValueError) as exc:
        return _layout(form + _message(str(exc), "rose"))
    return _layout(form + _result_block(token, result) + _scan_log(session))


@app.get("/", response_class=HTMLResponse)
async def home() -> HTMLResponse:
    """Serve the document submission form."""

    return HTMLResponse(_layout(_form()))


@app.post("/analyze", response_class=HTMLResponse)
async def analyze(request: Request, original: str = Form(...), updated: str = Form(...)) -> HTMLResponse:
    """Run matching and show the scan log."""

    options = await _options_from_form(request)
    session = MergeSession(original, updated, options)
    form = _form(original, updated, options)
    try:
        session.analyze()
    except EmptyInput as exc:
        return HTMLResponse(_layout(form + _message(str(exc))))

    stats = session.stats()
    summary = (
        f"Analysis complete: {stats.updated} updated, {stats.unchanged} unchanged, "
        f"{stats.added} added, {stats.skipped} skipped."
    )
    return HTMLResponse(_layout(form + _message(summary, "emerald") + _scan_log(session)))


@app.post("/merge", response_class=HTMLResponse)
async def merge(request: Request, original: str = Form(...), updated: str = Form(...)) -> HTMLResponse:
    """Merge the documents, or ask for conflict choices first."""

    session = MergeSession(original, updated, await _options_from_form(request))
    token = token_hex(8)
    sessions[token] = session
    return HTMLResponse(_run_merge(token, session))


@app.post("/resolve/{token}", response_class=HTMLResponse)
async def resolve(token: str, request: Request) -> HTMLResponse:
    """Resume a blocked merge with per-candidate choices."""

    session = sessions.get(token)
    if session is None:
        raise HTTPException(status_code=404, detail="Merge session not found or expired")

    form = await request.form()
    resolutions: Dict[int, str] = {}
    for key, value in form.items():
        if key.startswith("choice_") and key[len("choice_") :].isdigit():
            resolutions[int(key[len("choice_") :])] = str(value)
    return HTMLResponse(_run_merge(token, session, resolutions))


@app.get("/download/{token}")
async def download_merged(token: str) -> Response:
    """Serve the last merged document of a session."""

    session = sessions.get(token)
    if session is None or session.last_result is None:
        raise HTTPException(status_code=404, detail="Export not found or expired")

    return Response(
        content=session.last_result.merged_document,
        media_type="application/xml",
        headers={"Content-Disposition": 'attachment; filename="merged-references.xml"'},
    )


def main() -> None:
    """Run the FastAPI app using uvicorn."""

    import uvicorn

    uvicorn.run("reference_merger.web:app", host="0.0.0.0", port=8000, reload=False)


__all__ = ["app", "main"]
