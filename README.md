# fbconv

Building blocks for working with FictionBook (FB2) e-books:

- **An element-tree XML model** (`fbconv.xmltree`, `fbconv.xmldoc`). It keeps mixed content, so each element and comment carries its *tail* text. It finds elements with XPath-like paths (`fbconv.xmlpath`) and writes output that can be indented.
- **Book detection** (`fbconv.bookdetect`, `fbconv.archive`). It recognises `.fb2` books and `.zip` archives, detects Unicode byte order marks and walks the matching entries of an archive.
- **Configuration reading** (`fbconv.confencoders`, `fbconv.confsource`, `fbconv.confreader`). It reads JSON, YAML and TOML data from files or memory, deep-merges them and reads typed values out of the result.

## Installation

```
pip install .
```

To run the test suite:

```
pip install .[test]
pytest
```

## Working with XML

```python
from fbconv.xmldoc import Document

doc = Document()
doc.create_proc_inst("xml", 'version="1.0" encoding="UTF-8"')
people = doc.create_element("People")
people.create_comment("These are all known people")
people.create_element("Person").create_attr("name", "Jon O'Reilly")
people.create_element("Person").create_attr("name", "Sally")

doc.indent(2)
print(doc.write_to_string())
```

Output:

```
<?xml version="1.0" encoding="UTF-8"?>
<People>
  <!--These are all known people-->
  <Person name="Jon O&apos;Reilly"/>
  <Person name="Sally"/>
</People>
```

A `Document` is itself an `Element`. Its children are the processing instructions, comments and the root element. It has these methods:

- `read_from`, `read_from_file`, `read_from_bytes` and `read_from_string` parse XML. Malformed input raises `fbconv.xmldoc.XMLFormatError`.
- `write_to`, `write_to_file`, `write_to_bytes` and `write_to_string` serialize the document.
- `indent(spaces)` and `indent_tabs()` turn on indentation.

When a processing instruction is written, any `encoding="..."` it declares becomes `encoding="UTF-8"`. `ReadSettings` controls parsing: a `charset_reader` for non-UTF-8 input, `permissive` mode, and extra named `entity` values. `fbconv.xmltree.WriteSettings` controls output: canonical end tags, and text and attribute escaping.

Elements (`fbconv.xmltree.Element`) have these members:

- `tag`, `space`, `attrs`, `children`, `parent` and `tail`.
- A `text` property for the character data right after the opening tag.
- Methods to build and edit the tree: `create_element`, `add_next`, `add_same`, `add_child`, `insert_child`, `remove_child`, `create_attr`, `remove_attr`, `sort_attrs`, `set_text`, `set_tail` and `copy`.
- Methods to query it: `select_element`, `select_elements`, `select_attr`, `select_attr_value`, `child_elements`, `get_path` and `get_relative_path`.

### Path queries

```python
from fbconv.xmldoc import Document

doc = Document()
doc.read_from_string(
    "<bookstore><book><title>Great Expectations</title>"
    "<author>Charles Dickens</author></book></bookstore>"
)
for book in doc.find_elements(".//book[author='Charles Dickens']"):
    print(book.select_element("title").text)
```

The supported selectors are `.`, `..`, `*`, `tag`, a leading `/` and `//`. The supported filters are:

- `[n]`, which is 1-based; a negative number counts from the end.
- `[@attr]` and `[@attr='v']`.
- `[tag]` and `[tag='v']`.
- `[text()]` and `[text()='v']`.

Use `fbconv.xmlpath.compile_path` to compile a path once and then pass the compiled `Path` to `find_element` or `find_elements`. A malformed path raises `fbconv.xmlpath.PathError`.

## Detecting books

```python
import zipfile

from fbconv.archive import walk
from fbconv.bookdetect import is_archive_file, is_book_file, is_book_in_archive

ok, encoding = is_book_file("novel.fb2")

if is_archive_file("library.zip"):
    for zip_file, info in walk("library.zip", "fiction/"):
        is_book, encoding = is_book_in_archive(zip_file, info)
        print(info.filename, is_book, encoding)
```

`detect_utf` reads a byte order mark and returns a `SourceEncoding`: UTF-8, UTF-16 or UTF-32 in either byte order, or `UNKNOWN`. `select_reader(stream, encoding)` wraps a binary stream so that it yields UTF-8 without the mark.

The detection functions raise `OSError` when a file cannot be read and `EOFError` when it is empty.

## Configuration

```python
from fbconv.confreader import JsonReader
from fbconv.confsource import FileSource, MemorySource

reader = JsonReader()
merged = reader.merge(
    MemorySource.from_json(b'{"document": {"chapter_level": 2}}').read(),
    FileSource("fb2c.yaml").read(),
)
values = reader.values(merged)
print(values.get("document", "chapter_level").as_int(0))
```

A `FileSource` takes its format from the file extension:

- `json`, `yaml`, `yml` and `toml` are each read in their own format.
- Any other extension is read as JSON.

`JsonReader.merge` deep-merges mappings in order, and later change sets override earlier ones. The result is compact JSON with sorted keys.

While the values are parsed, each `${NAME}` is replaced by the environment variable of that name; an unset variable becomes empty.

A `Value` gives typed access to one setting:

- `as_bool`, `as_int`, `as_str` and `as_float`.
- `as_duration`, which parses strings such as `"1h30m"`.
- `as_string_list` and `as_string_map`.
- `data` and `to_bytes`.

Each accessor falls back to the given default when the value does not fit.

## What is not included

This package has no command-line program. It does not convert books to EPUB, KEPUB, AZW3 or MOBI, and it does not send books by e-mail. It has no ready-made settings object with built-in defaults, and it does not watch configuration files for changes. It provides the XML, detection and configuration-reading parts that such a converter is built from.