from django import template

from jobs.status import badge_class, display_label, is_final

register = template.Library()


@register.filter
def status_label(value):
    return display_label(value)


@register.filter
def status_badge(value):
    return badge_class(value).value


@register.filter
def status_is_final(value):
    return is_final(value)
