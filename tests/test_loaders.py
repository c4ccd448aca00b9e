"""
Tests for question sources and the source registry.
"""

import pytest

from conftest import write_csv
from jeopardy.core.errors import DuplicateQuestionError, LoadError, UnknownFormatError
from jeopardy.core.loaders import (
    CsvQuestionSource,
    JsonQuestionSource,
    QuestionSource,
    QuestionSourceRegistry,
    XmlQuestionSource,
    default_locator,
    default_registry,
)


class TestCsvQuestionSource:
    """Test CSV loading."""

    def test_loads_rows_and_skips_header(self, grid_csv):
        """Header row is skipped, every data row becomes a question."""
        bank = CsvQuestionSource().load(grid_csv)
        assert len(bank) == 4
        assert bank.unanswered_categories() == ["Math", "Science"]
        question = bank.find("Science", 200)
        assert question.options == {"A": "Sirius", "B": "Vega", "C": "The Sun", "D": "Polaris"}
        assert question.correct_label == "C"

    def test_quoted_fields(self, tmp_path):
        """Commas inside quoted fields stay in the field."""
        path = write_csv(tmp_path / "quoted.csv", ['Lists,100,"Which is a list, in Python?",[],{},(),"a, b",A'])
        question = CsvQuestionSource().load(path).find("Lists", 100)
        assert question.prompt == "Which is a list, in Python?"
        assert question.options["D"] == "a, b"

    def test_blank_option_cell_keeps_later_labels(self, tmp_path):
        """An empty B cell leaves C and D where the file put them."""
        path = write_csv(tmp_path / "gap.csv", ["Math,100,Pick three,one,,three,four,C"])
        question = CsvQuestionSource().load(path).find("Math", 100)
        assert question.options == {"A": "one", "B": "", "C": "three", "D": "four"}
        assert question.correct_text == "three"

    def test_short_rows_skipped(self, tmp_path):
        """Rows with fewer than eight columns are ignored."""
        path = write_csv(
            tmp_path / "short.csv",
            ["Math,100,What is 2 + 2?,4,5,6,22,A", "Math,200,too short,A"],
        )
        assert len(CsvQuestionSource().load(path)) == 1

    def test_invalid_record_skipped_unless_strict(self, tmp_path):
        """A bad correct label drops the record, or fails in strict mode."""
        path = write_csv(
            tmp_path / "bad.csv",
            ["Math,100,What is 2 + 2?,4,5,6,22,A", "Math,200,What is 3 * 3?,6,9,12,33,Z"],
        )
        assert len(CsvQuestionSource().load(path)) == 1
        with pytest.raises(LoadError):
            CsvQuestionSource(strict=True).load(path)

    def test_missing_file(self, tmp_path):
        """A missing file is a load error naming the locator."""
        with pytest.raises(LoadError) as exc_info:
            CsvQuestionSource().load(tmp_path / "nope.csv")
        assert "nope.csv" in exc_info.value.locator

    def test_duplicates_rejected(self, tmp_path):
        """Duplicate category/value pairs fail the load."""
        path = write_csv(
            tmp_path / "dupes.csv",
            ["Math,100,What is 2 + 2?,4,5,6,22,A", "Math,100,What is 3 * 3?,6,9,12,33,B"],
        )
        with pytest.raises(DuplicateQuestionError):
            CsvQuestionSource().load(path)

    def test_header_only_is_empty(self, tmp_path):
        """A file with no questions cannot build a bank."""
        path = write_csv(tmp_path / "empty.csv", [])
        with pytest.raises(LoadError):
            CsvQuestionSource().load(path)


class TestJsonQuestionSource:
    """Test JSON loading."""

    def test_labelled_map_and_list_options(self, tmp_path):
        """Both option shapes and both correct-answer spellings are read."""
        path = tmp_path / "bank.json"
        path.write_text(
            """[
              {"Category": "Math", "Value": 100, "Question": "2 + 2?",
               "Options": {"B": "5", "A": "4"}, "CorrectAnswer": "a"},
              {"Category": "Math", "Value": "200", "Question": "3 * 3?",
               "Options": ["6", "9"], "correctAnswer": "B"}
            ]""",
            encoding="utf-8",
        )
        bank = JsonQuestionSource().load(path)
        first = bank.find("Math", 100)
        assert first.options == {"A": "4", "B": "5"}
        assert first.correct_label == "A"
        assert bank.find("Math", 200).correct_text == "9"

    def test_malformed_json(self, tmp_path):
        """Unparseable JSON is a load error."""
        path = tmp_path / "broken.json"
        path.write_text("[{", encoding="utf-8")
        with pytest.raises(LoadError):
            JsonQuestionSource().load(path)

    def test_non_array(self, tmp_path):
        """The document root must be an array."""
        path = tmp_path / "object.json"
        path.write_text('{"Category": "Math"}', encoding="utf-8")
        with pytest.raises(LoadError):
            JsonQuestionSource().load(path)


class TestXmlQuestionSource:
    """Test XML loading."""

    def test_question_items(self, tmp_path):
        """Options come from child nodes in document order."""
        path = tmp_path / "bank.xml"
        path.write_text(
            """<Questions>
              <QuestionItem>
                <Category>History</Category>
                <Value>300</Value>
                <QuestionText>WWI began?</QuestionText>
                <Options><OptionA>1912</OptionA><OptionB>1914</OptionB></Options>
                <CorrectAnswer>B</CorrectAnswer>
              </QuestionItem>
            </Questions>""",
            encoding="utf-8",
        )
        question = XmlQuestionSource().load(path).find("History", 300)
        assert question.options == {"A": "1912", "B": "1914"}
        assert question.correct_text == "1914"

    def test_malformed_xml(self, tmp_path):
        """Broken markup is a load error."""
        path = tmp_path / "broken.xml"
        path.write_text("<Questions><QuestionItem>", encoding="utf-8")
        with pytest.raises(LoadError):
            XmlQuestionSource().load(path)


class TestSampleBanks:
    """The bundled samples load with every built-in source."""

    @pytest.mark.parametrize("name", ["csv", "json", "xml"])
    def test_sample_loads(self, data_dir, name):
        bank = default_registry().create(name).load(default_locator(data_dir, name))
        assert len(bank) > 0
        assert "Control Structures" in bank.unanswered_categories()


class TestQuestionSourceRegistry:
    """Test the format registry."""

    def test_default_names(self):
        assert default_registry().names() == ["csv", "json", "xml"]

    def test_create_is_case_insensitive(self):
        assert isinstance(default_registry().create("JSON"), JsonQuestionSource)

    def test_unknown_format(self):
        """Unknown names raise a load error listing the alternatives."""
        with pytest.raises(UnknownFormatError) as exc_info:
            default_registry().create("yaml")
        assert exc_info.value.available == ["csv", "json", "xml"]
        assert isinstance(exc_info.value, LoadError)

    def test_for_path(self, tmp_path):
        """Sources are resolved by file extension."""
        registry = default_registry()
        assert isinstance(registry.for_path(tmp_path / "bank.XML"), XmlQuestionSource)
        with pytest.raises(UnknownFormatError):
            registry.for_path(tmp_path / "bank.pdf")

    def test_register_new_format(self, tmp_path):
        """A new format is one subclass plus one register call."""

        class PipeQuestionSource(QuestionSource):
            format_name = "pipe"
            extensions = (".pipe",)

            def read_records(self, path):
                for index, line in enumerate(path.read_text(encoding="utf-8").splitlines()):
                    category, value, prompt, answer = line.split("|")
                    yield f"line {index + 1}", {
                        "category": category,
                        "value": value,
                        "prompt": prompt,
                        "options": [answer, "wrong"],
                        "correct_label": "A",
                    }

        registry = QuestionSourceRegistry()
        registry.register("pipe", PipeQuestionSource)
        path = tmp_path / "bank.pipe"
        path.write_text("Math|100|2 + 2?|4\n", encoding="utf-8")

        assert "pipe" in registry
        bank = registry.for_path(path).load(path)
        assert bank.find("Math", 100).correct_text == "4"

    def test_default_locator(self, tmp_path):
        """Sample files follow the sample_game_<FMT>.<ext> naming."""
        assert default_locator(tmp_path, "csv") == tmp_path / "sample_game_CSV.csv"
