"""Unit tests for the preview page."""
from unittest.mock import patch

from renderer.preview_page import (
    LZ_STRING_SCRIPT_URL,
    get_environment,
    render_preview_page,
)


class TestPreviewPage:
    """Test cases for the preview page template."""
    
    def test_render_substitutes_settings(self):
        """Test template variables are filled in."""
        html = render_preview_page()
        
        assert html.startswith('<!DOCTYPE html>')
        assert f'<script src="{LZ_STRING_SCRIPT_URL}"></script>' in html
        assert 'var DEBOUNCE_MS = 500;' in html
        assert 'var ITEM_LIMIT = 25;' in html
        assert '{{' not in html
    
    @patch('renderer.preview_page.PREVIEW_ITEM_LIMIT', 10)
    @patch('renderer.preview_page.PREVIEW_DEBOUNCE_MS', 250)
    def test_render_uses_module_settings(self):
        """Test changed settings reach the page."""
        html = render_preview_page()
        
        assert 'var DEBOUNCE_MS = 250;' in html
        assert 'var ITEM_LIMIT = 10;' in html
    
    def test_environment_autoescapes_html_templates(self):
        """Test .html.j2 templates escape their variables."""
        env = get_environment()
        template = env.get_template('preview.html.j2')
        
        html = template.render(
            lz_string_script_url='"><script>x</script>',
            debounce_ms=1,
            item_limit=1
        )
        
        assert '&#34;&gt;&lt;script&gt;x&lt;/script&gt;' in html
