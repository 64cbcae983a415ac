from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from markov_service.services.chatter import ChatMessage, ChatterService

router = APIRouter(prefix="/markov", tags=["markov"])


def get_chatter(request: Request) -> ChatterService:
    chatter = getattr(request.app.state, "chatter", None)
    if chatter is None:
        raise HTTPException(status_code=503, detail="markov service not initialized")
    return chatter


class TrainRequest(BaseModel):
    texts: List[str]


class MessageRequest(BaseModel):
    content: str
    channel_id: str
    author_id: str = ""
    author_name: str = ""
    author_is_bot: bool = False
    mentions_bot: bool = False


class GenerateRequest(BaseModel):
    prompt: Optional[str] = None
    length: int = Field(default=50, ge=20, le=150)


class SaveRequest(BaseModel):
    force: bool = True


class UserItem(BaseModel):
    id: str
    name: str


class UsersRequest(BaseModel):
    users: List[UserItem]


@router.post("/train")
async def train(req: TrainRequest, chatter: ChatterService = Depends(get_chatter)):
    if not req.texts:
        raise HTTPException(status_code=400, detail="texts is empty")
    trained = sum(1 for text in req.texts if chatter.train(text))
    return {"ok": True, "data": {"trained": trained, "chain_size": len(chatter.model.chain)}}


@router.post("/messages")
async def observe_message(req: MessageRequest, chatter: ChatterService = Depends(get_chatter)):
    trained, reply = chatter.observe(ChatMessage(**req.model_dump()))
    return {"ok": True, "data": {"trained": trained, "reply": reply}}


@router.post("/generate")
async def generate(req: GenerateRequest, chatter: ChatterService = Depends(get_chatter)):
    if chatter.model.is_empty:
        raise HTTPException(
            status_code=404,
            detail="markov chain hasn't been trained yet, send some messages first",
        )
    result = chatter.generate(prompt=req.prompt, length=req.length)
    return {
        "ok": True,
        "data": {
            "text": result.text,
            "prompt_found": result.prompt_found,
            "word_count": result.word_count,
        },
    }


@router.get("/stats")
async def stats(chatter: ChatterService = Depends(get_chatter)):
    return {
        "ok": True,
        "data": {
            "model": chatter.stats(),
            "snapshot": await chatter.snapshot_stats(),
        },
    }


@router.post("/save")
async def save(req: SaveRequest, chatter: ChatterService = Depends(get_chatter)):
    saved = await chatter.save(force=req.force)
    return {"ok": True, "data": {"saved": saved}}


@router.post("/users")
async def set_users(req: UsersRequest, chatter: ChatterService = Depends(get_chatter)):
    known = chatter.set_user_mappings((u.id, u.name) for u in req.users)
    return {"ok": True, "data": {"known_users": known}}
