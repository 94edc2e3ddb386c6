import ssl

import pytest

from titan.tls import tls_config


def test_missing_files_raise(tmp_path):
    with pytest.raises(FileNotFoundError):
        tls_config(str(tmp_path / "missing.crt"), str(tmp_path / "missing.key"))


def test_invalid_files_raise_ssl_error(tmp_path):
    cert = tmp_path / "server.crt"
    key = tmp_path / "server.key"
    cert.write_text("not a certificate\n")
    key.write_text("not a key\n")
    with pytest.raises(ssl.SSLError):
        tls_config(str(cert), str(key))