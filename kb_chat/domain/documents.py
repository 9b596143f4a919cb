"""知识库文档模型。"""

import mimetypes
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Literal, Optional


# uploading 为唯一的非终态；success / error 为终态
DocumentStatus = Literal["uploading", "success", "error"]


@dataclass
class Document:
    """已提交到知识库的一个文档。

    - id: 本地 ID，仅用于注册表内部定位。
    - name: 文件名；远端知识库以名称而非本地 ID 作为主键。
    - status: 上传生命周期状态。
    - error: status 为 "error" 时的错误说明。
    """

    id: str
    name: str
    uploaded_at: datetime
    status: DocumentStatus = "uploading"
    error: Optional[str] = None


@dataclass(frozen=True)
class UploadFile:
    """待上传的文件内容。"""

    name: str
    content: bytes
    content_type: str = "application/octet-stream"

    @classmethod
    def from_path(cls, path: str | Path) -> "UploadFile":
        p = Path(path).expanduser()
        guessed, _ = mimetypes.guess_type(p.name)
        return cls(
            name=p.name,
            content=p.read_bytes(),
            content_type=guessed or "application/octet-stream",
        )
