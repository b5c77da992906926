"""
Tests for the command line interface.
"""

from vector_search.cli import main


class TestCli:
    """Test cases for vector-search commands."""

    def test_index(self, settings, service, product_ids, capsys):
        exit_code = main(["index"], settings, service)

        output = capsys.readouterr().out
        assert exit_code == 0
        assert "Successfully indexed 5 products" in output

    def test_index_reports_errors(self, settings, service, product_ids, embedding_stub):
        embedding_stub.fail_batches = 1
        assert main(["index", "--batch-size", "2"], settings, service) == 1

    def test_index_rejects_invalid_batch_size(self, settings, service, product_ids, capsys):
        assert main(["index", "--batch-size", "0"], settings, service) == 1
        assert main(["index", "--batch-size", "-1"], settings, service) == 1
        assert "at least 1" in capsys.readouterr().err
        assert service.store.count() == 0

    def test_search(self, settings, service, product_ids, capsys):
        main(["index"], settings, service)
        capsys.readouterr()

        exit_code = main(
            ["search", "red running shoe", "--limit", "2", "--threshold", "0.5", "--verbose"],
            settings,
            service,
        )

        output = capsys.readouterr().out
        assert exit_code == 0
        assert "p-shoe" in output
        assert "Red Running Shoe" in output

    def test_search_failure(self, settings, service, embedding_stub, capsys):
        embedding_stub.fail_all = True

        assert main(["search", "shoe"], settings, service) == 1
        assert "Error:" in capsys.readouterr().err

    def test_clear_requires_confirmation(self, settings, service, product_ids, monkeypatch, capsys):
        main(["index"], settings, service)
        monkeypatch.setattr("builtins.input", lambda prompt: "n")

        assert main(["clear"], settings, service) == 0
        assert "Aborted" in capsys.readouterr().out
        assert service.store.count() == 5

    def test_clear_force(self, settings, service, product_ids):
        main(["index"], settings, service)

        assert main(["clear", "--force"], settings, service) == 0
        assert service.store.count() == 0

    def test_status(self, settings, service, product_ids, capsys):
        assert main(["status"], settings, service) == 0

        output = capsys.readouterr().out
        assert "json_fallback" in output
        assert "Products:         5" in output

    def test_debug(self, settings, service, capsys):
        assert main(["debug"], settings, service) == 0
        assert '"dialect": "sqlite"' in capsys.readouterr().out

    def test_serve(self, settings, monkeypatch):
        calls = []
        monkeypatch.setattr("vector_search.cli.uvicorn.run", lambda app, **kwargs: calls.append((app, kwargs)))

        assert main(["serve", "--port", "9000"], settings) == 0
        assert calls == [(
            "vector_search.main:app",
            {"host": settings.host, "port": 9000, "log_level": "info"},
        )]
