"""Fixtures for hub-render tool tests."""

import io
import pathlib
import tarfile
import textwrap

import pytest


def _write_archive(path: pathlib.Path, files: dict[str, str]) -> None:
    with tarfile.open(path, mode="w:gz") as archive:
        for name, content in files.items():
            data = content.encode("utf-8")
            info = tarfile.TarInfo(name=name)
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))


@pytest.fixture(name="spec_file")
def spec_file_fixture(tmp_path: pathlib.Path) -> pathlib.Path:
    """Write an application spec backed by a local manifests archive."""
    archive_path = tmp_path / "manifests.tgz"
    _write_archive(
        archive_path,
        {
            "manifests/configmap.yaml": textwrap.dedent(
                """\
                apiVersion: v1
                kind: ConfigMap
                metadata:
                  name: settings
                  labels:
                    app.kubernetes.io/part-of: demo
                data:
                  key: value
                """
            ),
            "manifests/secret.yaml": textwrap.dedent(
                """\
                apiVersion: v1
                kind: Secret
                metadata:
                  name: credentials
                """
            ),
            "README.md": "not a manifest",
        },
    )
    spec_path = tmp_path / "spec.yaml"
    spec_path.write_text(
        textwrap.dedent(
            f"""\
            name: demo
            versions:
              - version: 1.0.0
                manifestsArchive:
                  uri: {archive_path}
                requiredLabels:
                  app.kubernetes.io/part-of: demo
                valuesYaml: |
                  replicaCount: 1
                  namespace: "{{{{ .InstallNamespace }}}}"
                parameters:
                  - name: image.tag
                flavors:
                  - name: default
                    customizationLayers:
                      - id: size
                        options:
                          - id: small
                            helmValues: |
                              resources:
                                cpu: 100m
                          - id: large
                            helmValues: |
                              resources:
                                cpu: "1"
            """
        )
    )
    return spec_path
