"""
로컬 Blob 저장소

영수증 이미지를 로컬 디렉토리에 저장하고 공개 URL 발급.
공개 URL은 web.app의 GET /receipts/{key} 라우트가 FileResponse로 제공한다.
IBlobStore 인터페이스 구현체.
"""

import asyncio
import logging
import secrets
import time
from pathlib import Path
from urllib.parse import urlparse

from adapters.models import StoredBlob
from core.domain.errors import CollaboratorError

logger = logging.getLogger(__name__)


# MIME 타입 → 확장자
CONTENT_TYPE_EXTENSIONS: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/heic": "heic",
}


def extension_for(content_type: str) -> str:
    """MIME 타입에서 확장자 결정 (모르는 타입은 subtype 그대로)"""
    if content_type in CONTENT_TYPE_EXTENSIONS:
        return CONTENT_TYPE_EXTENSIONS[content_type]
    subtype = content_type.split("/", 1)[-1]
    return subtype.split("+", 1)[0] or "bin"


class LocalBlobStore:
    """로컬 디렉토리 Blob 저장소

    키 형식: {epoch_ms}_{random}.{ext}

    Args:
        root_dir: 저장 디렉토리
        public_base_url: 공개 URL 접두어 (예: http://127.0.0.1:8000/receipts)

    사용 예시:
    ```python
    store = LocalBlobStore(Paths.RECEIPTS_DIR, "http://127.0.0.1:8000/receipts")
    key, url = await store.upload(data, "image/jpeg")
    await store.remove([store.key_from_url(url)])
    ```
    """

    def __init__(self, root_dir: Path | str, public_base_url: str):
        self.root_dir = Path(root_dir)
        self.public_base_url = public_base_url.rstrip("/")

    def _new_key(self, content_type: str) -> str:
        epoch_ms = int(time.time() * 1000)
        return f"{epoch_ms}_{secrets.token_hex(4)}.{extension_for(content_type)}"

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{key}"

    def path_for(self, key: str) -> Path:
        # 키는 파일명만 허용 (디렉토리 탈출 방지)
        return self.root_dir / Path(key).name

    async def upload(self, data: bytes, content_type: str) -> tuple[str, str]:
        """업로드

        Returns:
            (key, public_url)

        Raises:
            CollaboratorError: 파일 쓰기 실패
        """
        key = self._new_key(content_type)
        path = self.path_for(key)

        try:
            self.root_dir.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(path.write_bytes, data)
        except OSError as e:
            raise CollaboratorError(f"画像のアップロードに失敗しました: {e}") from e

        logger.info(
            "영수증 업로드",
            extra={"key": key, "size": len(data), "content_type": content_type},
        )
        return key, self.public_url(key)

    async def list_blobs(self) -> list[StoredBlob]:
        """저장된 Blob 목록"""
        if not self.root_dir.exists():
            return []

        blobs: list[StoredBlob] = []
        for path in sorted(self.root_dir.iterdir()):
            if not path.is_file():
                continue
            blobs.append(
                StoredBlob(
                    key=path.name,
                    size=path.stat().st_size,
                    public_url=self.public_url(path.name),
                )
            )
        return blobs

    async def remove(self, keys: list[str]) -> int:
        """일괄 삭제 (없는 키는 무시)

        Returns:
            실제 삭제된 수

        Raises:
            CollaboratorError: 파일 삭제 실패
        """
        removed = 0
        for key in keys:
            path = self.path_for(key)
            try:
                if path.exists():
                    await asyncio.to_thread(path.unlink)
                    removed += 1
            except OSError as e:
                raise CollaboratorError(f"画像の削除に失敗しました: {key}: {e}") from e

        logger.info(f"영수증 삭제: {removed}/{len(keys)}")
        return removed

    def key_from_url(self, url: str) -> str | None:
        """공개 URL에서 키 추출 (URL 경로의 마지막 구간)"""
        if not url:
            return None
        if url.startswith(self.public_base_url + "/"):
            return url[len(self.public_base_url) + 1:] or None

        segment = urlparse(url).path.rsplit("/", 1)[-1]
        return segment or None
