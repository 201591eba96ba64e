# Tests for the stateless Switch control.

from unittest.mock import MagicMock

from ragstudio.ui.switch import Switch, SwitchOptions


class TestSwitchActivation:
    def test_unchecked_reports_true_once(self):
        callback = MagicMock()
        Switch(checked=False, on_checked_change=callback).activate()
        callback.assert_called_once_with(True)

    def test_checked_reports_false(self):
        callback = MagicMock()
        Switch(checked=True, on_checked_change=callback).activate()
        callback.assert_called_once_with(False)

    def test_disabled_never_reports(self):
        callback = MagicMock()
        Switch(checked=False, on_checked_change=callback, disabled=True).activate()
        callback.assert_not_called()

    def test_without_callback_is_a_no_op(self):
        Switch(checked=True).activate()

    def test_does_not_change_its_own_state(self):
        switch = Switch(checked=False, on_checked_change=lambda value: None)
        switch.activate()
        assert switch.checked is False
        assert switch.state == "unchecked"


class TestSwitchRendering:
    def test_state_attributes_mirror_checked(self):
        on = Switch(checked=True).render()
        off = Switch(checked=False).render()
        assert 'aria-checked="true"' in on
        assert on.count('data-state="checked"') == 2
        assert 'aria-checked="false"' in off
        assert off.count('data-state="unchecked"') == 2

    def test_button_role_and_type(self):
        html = Switch().render()
        assert html.startswith('<button type="button" role="switch"')
        assert html.endswith("</span></button>")

    def test_disabled_attribute(self):
        assert " disabled " in Switch(disabled=True).render()
        assert "disabled" not in Switch().attributes()

    def test_options_are_rendered_and_escaped(self):
        options = SwitchOptions(
            element_id="stream-toggle",
            name="stream",
            class_name="ml-2",
            aria_label='Stream "live"',
            title="<b>",
        )
        html = Switch(options=options).render()
        assert 'id="stream-toggle"' in html
        assert 'name="stream"' in html
        assert 'aria-label="Stream &quot;live&quot;"' in html
        assert 'title="&lt;b&gt;"' in html
        assert "data-[state=unchecked]:bg-gray-200 ml-2" in html

    def test_unset_options_are_omitted(self):
        attrs = Switch().attributes()
        assert "id" not in attrs
        assert "aria-label" not in attrs
