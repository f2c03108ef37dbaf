from fastapi import APIRouter, Depends, HTTPException, Request

from zennote.dependencies import get_store
from zennote.errors import ReferenceNotFound
from zennote.middleware.rate_limit import assistant_limiter
from zennote.schemas import ActiveNote, NoteCreate, NoteMove, NoteRename, NoteResponse, NoteUpdate, SaveStatusResponse
from zennote.services import llm
from zennote.services.store import NoteStore

router = APIRouter(prefix="/notes", tags=["notes"])


def _response(store: NoteStore, note_id: str) -> NoteResponse:
    return NoteResponse.from_note(store.get_note(note_id), store.status(note_id))


@router.get("", response_model=list[NoteResponse])
async def list_notes(q: str | None = None, store: NoteStore = Depends(get_store)) -> list[NoteResponse]:
    notes = store.index.search(q) if q is not None else store.notes
    return [NoteResponse.from_note(n, store.status(n.id)) for n in notes]


@router.post("", response_model=NoteResponse, status_code=201)
async def create_note(data: NoteCreate, store: NoteStore = Depends(get_store)) -> NoteResponse:
    try:
        note = await store.create_note(data.title, data.folder_id)
    except ReferenceNotFound:
        raise HTTPException(status_code=400, detail="Folder not found")
    await store.select_note(note.id)
    return NoteResponse.from_note(note)


@router.put("/active", response_model=ActiveNote)
async def set_active_note(data: ActiveNote, store: NoteStore = Depends(get_store)) -> ActiveNote:
    await store.select_note(data.note_id)
    return ActiveNote(note_id=store.active_note_id)


@router.post("/move", response_model=NoteResponse)
async def move_note(data: NoteMove, store: NoteStore = Depends(get_store)) -> NoteResponse:
    """Drop a dragged note onto a folder, or onto the root when no folder is given."""
    try:
        note = await store.move_note_by_token(data.token, data.target_folder_id or None)
    except ReferenceNotFound as e:
        if e.kind == "folder":
            raise HTTPException(status_code=400, detail="Target folder not found")
        raise
    return NoteResponse.from_note(note, store.status(note.id))


@router.get("/{note_id}", response_model=NoteResponse)
async def get_note(note_id: str, store: NoteStore = Depends(get_store)) -> NoteResponse:
    return _response(store, note_id)


@router.patch("/{note_id}", response_model=NoteResponse)
async def edit_note(note_id: str, data: NoteUpdate, store: NoteStore = Depends(get_store)) -> NoteResponse:
    """Editor keystrokes. Returns the optimistic note; the write happens after the quiet period."""
    store.edit_note(note_id, title=data.title, content=data.content)
    return _response(store, note_id)


@router.post("/{note_id}/rename", response_model=NoteResponse)
async def rename_note(note_id: str, data: NoteRename, store: NoteStore = Depends(get_store)) -> NoteResponse:
    await store.rename_note(note_id, data.title)
    return _response(store, note_id)


@router.post("/{note_id}/flush", response_model=NoteResponse)
async def flush_note(note_id: str, store: NoteStore = Depends(get_store)) -> NoteResponse:
    store.get_note(note_id)
    await store.flush(note_id)
    return _response(store, note_id)


@router.get("/{note_id}/status", response_model=SaveStatusResponse)
async def get_save_status(note_id: str, store: NoteStore = Depends(get_store)) -> SaveStatusResponse:
    store.get_note(note_id)
    return SaveStatusResponse(note_id=note_id, status=store.status(note_id))


@router.delete("/{note_id}", status_code=204)
async def delete_note(note_id: str, store: NoteStore = Depends(get_store)) -> None:
    await store.delete_note(note_id)


@router.post("/{note_id}/summarize", response_model=NoteResponse)
@assistant_limiter
async def summarize_note(request: Request, note_id: str, store: NoteStore = Depends(get_store)) -> NoteResponse:
    """Append an AI summary of the note to its content."""
    note = store.get_note(note_id)
    summary = await llm.summarize_note(llm.plain_text(note.content))
    store.append_content(note_id, llm.summary_block(summary))
    return _response(store, note_id)


@router.post("/{note_id}/expand", response_model=NoteResponse)
@assistant_limiter
async def expand_note(request: Request, note_id: str, store: NoteStore = Depends(get_store)) -> NoteResponse:
    """Append an AI deep-dive on the note to its content."""
    note = store.get_note(note_id)
    expansion = await llm.expand_note(llm.plain_text(note.content))
    store.append_content(note_id, llm.expansion_block(expansion))
    return _response(store, note_id)
