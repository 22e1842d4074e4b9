"""Upload of missing cookbook content into a sandbox."""

import base64
import binascii
import logging

from .checksums import ChecksumIndex
from .core.errors import TransportError, UploadError
from .core.types import SandboxDescriptor
from .transport import ChefTransport

logger = logging.getLogger(__name__)

CONTENT_TYPE = "application/x-binary"


def content_md5(checksum: str) -> str:
    """Encode a hex MD5 checksum as a Content-MD5 header value.

    The header carries the raw digest bytes in standard base64, not the
    hex text.

    Raises:
        ValueError: If checksum is not valid hex
    """
    try:
        raw = binascii.unhexlify(checksum)
    except binascii.Error as e:
        raise ValueError(f"Invalid checksum {checksum!r}: {e}") from e
    return base64.b64encode(raw).decode("ascii")


class ContentUploader:
    """Uploads every sandbox slot the server reported as missing.

    Files are uploaded one at a time. The first failure aborts the whole
    upload, since the manifest can only be published once all of its
    content exists on the server.
    """

    def __init__(self, transport: ChefTransport):
        self.transport = transport

    def upload_file(self, checksum: str, url: str, index: ChecksumIndex) -> None:
        """Upload the content for one checksum.

        Raises:
            UploadError: If the file cannot be read or the PUT fails
        """
        path = index.path_for(checksum)
        headers = {
            "content-type": CONTENT_TYPE,
            "content-md5": content_md5(checksum),
            "accept": "application/json",
        }

        try:
            with open(path, "rb") as f:
                self.transport.put_content(url, f, headers)
        except (OSError, TransportError) as e:
            raise UploadError(checksum, path, e) from e

        logger.debug("Uploaded %s (%s)", path, checksum)

    def upload_missing(self, descriptor: SandboxDescriptor, index: ChecksumIndex) -> list[str]:
        """Upload all slots flagged as needing upload.

        Args:
            descriptor: Result of sandbox negotiation
            index: Checksum index supplying local file content

        Returns:
            Checksums that were uploaded, in upload order

        Raises:
            UploadError: On the first file that fails
        """
        uploaded = []
        for checksum, slot in descriptor.checksums.items():
            if not slot.needs_upload:
                continue
            if checksum not in index:
                raise UploadError(
                    checksum,
                    "",
                    KeyError(f"No local file for checksum {checksum}"),
                )
            # Negotiation guarantees a URL for every slot that needs upload
            self.upload_file(checksum, slot.url or "", index)
            uploaded.append(checksum)

        logger.info(
            "Uploaded %d of %d files to sandbox %s",
            len(uploaded),
            len(descriptor.checksums),
            descriptor.sandbox_id,
        )
        return uploaded
