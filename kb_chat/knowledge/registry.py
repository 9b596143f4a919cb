"""文档注册表：跟踪上传到知识库的文档及其上传生命周期。

- begin_upload / complete_upload 是同步的簿记操作，包住一次异步上传。
- delete_document 先调用远端删除，成功后才移除本地记录，避免本地与远端
  知识库状态不一致。
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Literal, Optional

from kb_chat.domain.documents import Document, UploadFile
from kb_chat.domain.exceptions import BusinessError, ValidationError
from kb_chat.domain.identity import IdGenerator, utcnow
from kb_chat.domain.models import OperationResult
from kb_chat.infrastructure.logging.logger import logger
from kb_chat.providers.base import KnowledgeBaseProvider


UploadOutcome = Literal["success", "error"]


class DocumentRegistry:
    def __init__(
        self,
        client: KnowledgeBaseProvider,
        ids: Optional[IdGenerator] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._client = client
        self._ids = ids or IdGenerator()
        self._clock = clock
        self._documents: List[Document] = []

    def list(self) -> List[Document]:
        """按登记顺序返回文档，最新的在最前。"""

        return list(self._documents)

    def get(self, document_id: str) -> Optional[Document]:
        for doc in self._documents:
            if doc.id == document_id:
                return doc
        return None

    def begin_upload(self, file: UploadFile) -> str:
        doc = Document(id=self._ids.new_id(), name=file.name, uploaded_at=self._clock())
        self._documents.insert(0, doc)
        self._log(logging.INFO, "Upload started", document_id=doc.id, name=doc.name, size=len(file.content))
        return doc.id

    def complete_upload(
        self,
        document_id: str,
        outcome: UploadOutcome,
        error_detail: Optional[str] = None,
    ) -> None:
        """把上传中的文档转为终态；找不到或已是终态时静默忽略。"""

        if outcome not in ("success", "error"):
            raise ValueError(f"Unknown upload outcome: {outcome!r}")
        doc = self.get(document_id)
        if doc is None or doc.status != "uploading":
            self._log(logging.WARNING, "Upload completion ignored", document_id=document_id, outcome=outcome)
            return
        doc.status = outcome
        doc.error = error_detail if outcome == "error" else None
        self._log(logging.INFO, "Upload completed", document_id=doc.id, name=doc.name, outcome=outcome)

    async def upload(self, file: UploadFile) -> Optional[Document]:
        """完整的上传流程：登记 → 传输 → 终态。传输失败不会抛出。

        Raises:
            ValidationError: 知识库未配置（如缺少 ragId）。此时不登记任何文档。
        """

        self._client.check_configured()
        document_id = self.begin_upload(file)
        try:
            await self._client.upload(file)
        except BusinessError as exc:
            self.complete_upload(document_id, "error", exc.message)
        except Exception as exc:  # noqa: BLE001 - 上传必须以终态结束
            logger.exception("Unexpected upload failure")
            self.complete_upload(document_id, "error", str(exc))
        else:
            self.complete_upload(document_id, "success")
        return self.get(document_id)

    async def delete_document(self, document_id: str) -> OperationResult:
        doc = self.get(document_id)
        if doc is None:
            raise ValidationError(code="DOCUMENT_NOT_FOUND", message=f"Document {document_id} not found")
        if doc.status == "uploading":
            raise ValidationError(
                code="DOCUMENT_UPLOADING",
                message=f"Document {doc.name} is still uploading",
            )
        self._client.check_configured()
        try:
            await self._client.delete_documents([doc.name])
        except BusinessError as exc:
            self._log(
                logging.WARNING,
                "Remote delete failed",
                document_id=doc.id,
                name=doc.name,
                code=exc.code,
                error=exc.message,
            )
            return OperationResult(ok=False, code=exc.code, error=exc.message)
        except Exception as exc:  # noqa: BLE001 - 删除失败只体现在返回结果上
            logger.exception("Unexpected delete failure")
            return OperationResult(ok=False, code="UNEXPECTED_ERROR", error=str(exc))
        self._documents = [d for d in self._documents if d.id != document_id]
        self._log(logging.INFO, "Deleted document", document_id=doc.id, name=doc.name)
        return OperationResult(ok=True)

    @staticmethod
    def _log(level: int, message: str, **fields: Any) -> None:
        payload: Dict[str, Any] = {"component": "document_registry"}
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
