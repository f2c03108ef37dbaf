from fastapi import APIRouter, Depends, HTTPException

from zennote.dependencies import get_store
from zennote.errors import ReferenceNotFound
from zennote.schemas import FolderCreate, FolderResponse, FolderTreeResponse, FolderUpdate
from zennote.services.store import NoteStore

router = APIRouter(prefix="/folders", tags=["folders"])


@router.get("", response_model=FolderTreeResponse)
async def get_folder_tree(store: NoteStore = Depends(get_store)) -> FolderTreeResponse:
    return store.index.tree()


@router.post("", response_model=FolderResponse, status_code=201)
async def create_folder(
    data: FolderCreate,
    store: NoteStore = Depends(get_store),
) -> FolderResponse:
    try:
        folder = await store.create_folder(data.name, data.parent_folder_id)
    except ReferenceNotFound:
        raise HTTPException(status_code=400, detail="Parent folder not found")
    return FolderResponse.from_folder(folder)


@router.patch("/{folder_id}", response_model=FolderResponse)
async def update_folder(
    folder_id: str,
    data: FolderUpdate,
    store: NoteStore = Depends(get_store),
) -> FolderResponse:
    changes = data.model_dump(exclude_unset=True)
    if "parent_folder_id" in changes:
        changes["parent_id"] = changes.pop("parent_folder_id") or None
    try:
        folder = await store.update_folder(folder_id, **changes)
    except ReferenceNotFound as e:
        if e.entity_id != folder_id:
            raise HTTPException(status_code=400, detail="Parent folder not found")
        raise
    return FolderResponse.from_folder(folder)


@router.post("/{folder_id}/toggle", response_model=FolderResponse)
async def toggle_folder(folder_id: str, store: NoteStore = Depends(get_store)) -> FolderResponse:
    return FolderResponse.from_folder(await store.toggle_folder(folder_id))


@router.delete("/{folder_id}", status_code=204)
async def delete_folder(folder_id: str, store: NoteStore = Depends(get_store)) -> None:
    await store.delete_folder(folder_id)
