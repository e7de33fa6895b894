from taskpilot.core.blocks import parse_response, extract_commands, extract_file_operations

def test_command_and_file():
    text = (
        "Je crée le module.\n"
        "$$$ COMMAND\n"
        "mkdir -p src\n"
        "$$$ END\n"
        "```python\n"
        "File: src/app.py\n"
        "print('hi')\n"
        "```\n"
    )
    parsed = parse_response(text)
    assert parsed.commands == ["mkdir -p src"]
    assert len(parsed.files) == 1
    assert parsed.files[0].path == "src/app.py"
    assert parsed.files[0].content == "print('hi')\n"

def test_no_blocks():
    assert parse_response("Rien à faire.").empty
    assert parse_response("").empty

def test_unterminated_command_ignored():
    assert extract_commands("$$$ COMMAND\necho hi\n") == []

def test_unterminated_file_ignored():
    assert extract_file_operations("```\nFile: a.txt\nhello\n") == []

def test_empty_command_skipped():
    assert extract_commands("$$$ COMMAND\n\n   \n$$$ END\n$$$ COMMAND\necho ok\n$$$ END") == ["echo ok"]

def test_multiline_command_kept_together():
    assert extract_commands("$$$ COMMAND\necho a\necho b\n$$$ END") == ["echo a\necho b"]

def test_end_marker_with_suffix():
    assert extract_commands("$$$ COMMAND\necho a\n$$$ END %%%") == ["echo a"]

def test_new_command_restarts_open_block():
    assert extract_commands("$$$ COMMAND\necho lost\n$$$ COMMAND\necho kept\n$$$ END") == ["echo kept"]

def test_command_markers_inside_file_are_content():
    text = "```\nFile: README.md\n$$$ COMMAND\nrm -rf /\n$$$ END\n```\n"
    parsed = parse_response(text)
    assert parsed.commands == []
    assert parsed.files[0].content == "$$$ COMMAND\nrm -rf /\n$$$ END\n"

def test_longer_fence_allows_nested_backticks():
    text = "````markdown\nFile: docs/guide.md\n# Guide\n```bash\necho hi\n```\n````\n"
    ops = extract_file_operations(text)
    assert len(ops) == 1
    assert ops[0].content == "# Guide\n```bash\necho hi\n```\n"

def test_plain_fence_is_not_a_file():
    text = "```bash\nls\n```\n```\nFile: b.txt\nB\n```"
    ops = extract_file_operations(text)
    assert [op.path for op in ops] == ["b.txt"]

def test_commands_inside_plain_fence_run():
    text = "```\n$$$ COMMAND\necho hi\n$$$ END\n```"
    assert extract_commands(text) == ["echo hi"]

def test_several_files_in_order():
    text = "```\nFile: a.txt\nA\n```\ntexte\n```\nFile: b.txt\n```"
    ops = extract_file_operations(text)
    assert [(o.path, o.content) for o in ops] == [("a.txt", "A\n"), ("b.txt", "")]

def test_end_marker_must_be_a_whole_word():
    text = "$$$ COMMAND\necho a\n$$$ ENDING\necho b\n$$$ END"
    assert extract_commands(text) == ["echo a\n$$$ ENDING\necho b"]
