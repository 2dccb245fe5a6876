from folio.html_utils import escape_html, join_root_url, minify_html, strip_tags, text_content
from folio.renderers import markdown_to_html


def test_escape_and_strip():
    assert escape_html('Tom & "Jerry" <3') == "Tom &amp; &quot;Jerry&quot; &lt;3"
    assert strip_tags("<p>Hello <em>you</em></p>") == "Hello you"


def test_join_root_url():
    assert join_root_url("https://example.com/", "/about/") == "https://example.com/about/"
    assert join_root_url("https://example.com", "about/") == "https://example.com/about/"
    assert join_root_url("/blog", "/posts/") == "/blog/posts/"
    assert join_root_url("", "/posts/") == "/posts/"


def test_minify_html_collapses_whitespace():
    html = "<div>\n  <p>a   b</p>\n</div>\n<!-- note -->\n<p>c</p>\n"
    assert minify_html(html) == "<div><p>a b</p></div><p>c</p>"


def test_minify_html_preserves_sensitive_elements():
    html = (
        "<body>\n"
        "<pre>  keep\n    this</pre>\n"
        "<textarea>  and\nthis </textarea>\n"
        "<script>var a  =  1;\n</script>\n"
        "<!--[if IE]><p>old</p><![endif]-->\n"
        "</body>"
    )
    out = minify_html(html)
    assert "<pre>  keep\n    this</pre>" in out
    assert "<textarea>  and\nthis </textarea>" in out
    assert "<script>var a  =  1;\n</script>" in out
    assert "<!--[if IE]>" in out


def test_minify_html_is_deterministic():
    html = "<ul>\n  <li>One</li>\n  <li>Two</li>\n</ul>"
    assert minify_html(html) == minify_html(html) == "<ul><li>One</li><li>Two</li></ul>"


def test_minify_html_keeps_space_between_inline_elements():
    html = "<p><strong>bold</strong>\n<em>italic</em>\n<a href=\"/x/\">link</a></p>\n<p>next</p>"
    assert minify_html(html) == (
        '<p><strong>bold</strong> <em>italic</em> <a href="/x/">link</a></p><p>next</p>'
    )


def test_minify_rendered_markdown_keeps_visible_spaces():
    html, _ = markdown_to_html("**bold**\n*italic*\n")
    assert minify_html(html) == "<p><strong>bold</strong> <em>italic</em></p>"


def test_text_content():
    assert text_content("<p>Tom &amp; <em>Jerry</em></p>\n<p>again</p>\n") == "Tom & Jerry again"
