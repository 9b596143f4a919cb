"""知识库 (RAG) 接口适配器。

- 上传：multipart 表单，字段 file（二进制）与 ragId。
- 删除：DELETE 请求，JSON 体 `{ragId, documents: [name]}`，文档按名称定位。

任何非 2xx 响应都视为失败。
"""

from typing import List

import httpx

from kb_chat.config.settings import settings
from kb_chat.domain.documents import UploadFile
from kb_chat.domain.exceptions import ApiError, NetworkError, ValidationError


class RagClient:
    name = "rag"

    def __init__(self, cfg=settings):
        self._settings = cfg

    @property
    def endpoint(self) -> str:
        return f"{self._settings.agent_base_url.rstrip('/')}{self._settings.rag_path}"

    async def upload(self, file: UploadFile) -> None:
        rag_id = self._require_rag_id()
        try:
            async with httpx.AsyncClient(timeout=self._settings.upload_timeout, trust_env=False) as client:
                resp = await client.post(
                    self.endpoint,
                    files={"file": (file.name, file.content, file.content_type)},
                    data={"ragId": rag_id},
                )
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e))
        self._raise_for_status(resp)

    async def delete_documents(self, names: List[str]) -> None:
        rag_id = self._require_rag_id()
        try:
            async with httpx.AsyncClient(timeout=self._settings.http_timeout, trust_env=False) as client:
                # httpx.AsyncClient.delete 不支持请求体，这里走通用 request
                resp = await client.request(
                    "DELETE",
                    self.endpoint,
                    json={"ragId": rag_id, "documents": list(names)},
                )
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e))
        self._raise_for_status(resp)

    def check_configured(self) -> None:
        self._require_rag_id()

    def _require_rag_id(self) -> str:
        rag_id = getattr(self._settings, "rag_id", None)
        if not rag_id:
            raise ValidationError(code="MISSING_RAG_ID", message="RAG_ID not set")
        return rag_id

    @staticmethod
    def _raise_for_status(resp) -> None:
        if not 200 <= resp.status_code < 300:
            raise ApiError(code="API_ERROR", message=resp.text, http_status=resp.status_code)
