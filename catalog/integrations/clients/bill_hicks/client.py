import datetime
import io
import logging
import socket
import typing
from urllib import parse

import paramiko
from django.conf import settings

from catalog.integrations.clients.bill_hicks import exceptions

logger = logging.getLogger(__name__)

_LOG_PREFIX = "[BILL-HICKS-SFTP-CLIENT]"


class BillHicksSFTPClient(object):
    def __init__(self, credentials: typing.Dict):
        self.sftp_server = self._clean_host(credentials.get("sftp_server") or credentials.get("ftp_server") or "")
        self.sftp_port = int(credentials.get("sftp_port") or credentials.get("ftp_port") or 22)
        self.sftp_user = credentials.get("sftp_user") or credentials.get("ftp_username") or ""
        self.sftp_password = credentials.get("sftp_password") or credentials.get("ftp_password") or ""
        self.catalog_path = credentials.get("catalog_path") or settings.BILL_HICKS_CATALOG_PATH

        if not all([self.sftp_server, self.sftp_user, self.sftp_password]):
            raise ValueError("Invalid credentials parameter. Missing required SFTP credentials.")

        self._transport = None
        self._sftp = None

    @staticmethod
    def _clean_host(server: str) -> str:
        server = server.strip()
        if "://" in server:
            return parse.urlparse(server).hostname or ""
        return server.rstrip("/")

    def _connect(self) -> None:
        try:
            sock = socket.create_connection((self.sftp_server, self.sftp_port), timeout=settings.CATALOG_SFTP_TIMEOUT)
            self._transport = paramiko.Transport(sock)
            self._transport.connect(username=self.sftp_user, password=self.sftp_password)
            self._sftp = paramiko.SFTPClient.from_transport(self._transport)
            self._sftp.get_channel().settimeout(settings.CATALOG_SFTP_TIMEOUT)
            logger.debug(f"{_LOG_PREFIX} Connected to SFTP server {self.sftp_server}:{self.sftp_port}")
        except (OSError, paramiko.SSHException) as e:
            self._disconnect()
            msg = f"Failed to connect to SFTP server. Error: {str(e)}"
            logger.error(f"{_LOG_PREFIX} {msg}")
            raise exceptions.BillHicksSFTPConnectionError(msg)

    def _disconnect(self) -> None:
        try:
            if self._sftp:
                self._sftp.close()
            if self._transport:
                self._transport.close()
            logger.debug(f"{_LOG_PREFIX} Disconnected from SFTP server")
        except (OSError, paramiko.SSHException) as e:
            logger.warning(f"{_LOG_PREFIX} Error during disconnect: {str(e)}")
        finally:
            self._sftp = None
            self._transport = None

    def get_catalog_modified_at(self) -> datetime.datetime:
        try:
            self._connect()
            attributes = self._sftp.stat(self.catalog_path)
            return datetime.datetime.fromtimestamp(attributes.st_mtime, tz=datetime.timezone.utc)
        except FileNotFoundError:
            msg = f"File not found: {self.catalog_path}"
            logger.error(f"{_LOG_PREFIX} {msg}")
            raise exceptions.BillHicksFileNotFoundError(msg)
        except (OSError, paramiko.SSHException) as e:
            msg = f"Failed to stat file {self.catalog_path}. Error: {str(e)}"
            logger.error(f"{_LOG_PREFIX} {msg}")
            raise exceptions.BillHicksException(msg)
        finally:
            self._disconnect()

    def get_catalog_file(self) -> bytes:
        try:
            self._connect()
            file_obj = io.BytesIO()
            self._sftp.getfo(self.catalog_path, file_obj)
            content = file_obj.getvalue()

            logger.info(f"{_LOG_PREFIX} Downloaded catalog file {self.catalog_path} ({len(content)} bytes)")
            return content
        except FileNotFoundError:
            msg = f"File not found: {self.catalog_path}"
            logger.error(f"{_LOG_PREFIX} {msg}")
            raise exceptions.BillHicksFileNotFoundError(msg)
        except (OSError, paramiko.SSHException) as e:
            msg = f"Failed to download file {self.catalog_path}. Error: {str(e)}"
            logger.error(f"{_LOG_PREFIX} {msg}")
            raise exceptions.BillHicksException(msg)
        finally:
            self._disconnect()
