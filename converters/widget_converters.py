"""Elementor widget converters producing plain semantic HTML."""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Union

from bs4 import BeautifulSoup, PageElement, Tag

logger = logging.getLogger('wp_cms_migrator.converters.widget_converters')

WIDGET_TYPE_ATTRIBUTE = 'data-widget_type'

HEADING_TAGS = ('h1', 'h2', 'h3', 'h4', 'h5', 'h6')

# Classes emitted by converters; the cleaner never unwraps or strips these
GENERATED_CLASSES = ('video-embed', 'image-gallery', 'tabs-content', 'image-box', 'btn', 'btn-primary')

Converter = Callable[[Tag], Optional[List[PageElement]]]


@dataclass
class Converted:
    """The widget was recognized; ``nodes`` replace it in document order."""

    nodes: List[PageElement] = field(default_factory=list)


@dataclass
class Unrecognized:
    """The widget was left untouched; ``reason`` says why."""

    element: Tag
    reason: str


ConversionResult = Union[Converted, Unrecognized]


def widget_type_of(element: Tag) -> Optional[str]:
    """Widget key of an element (``heading`` for ``heading.default``)."""
    value = element.get(WIDGET_TYPE_ATTRIBUTE)
    if not value:
        return None
    return value.split('.')[0].strip() or None


def _new_tag(name: str, **attrs) -> Tag:
    return BeautifulSoup('', 'lxml').new_tag(name, attrs=attrs)


def _image_source(img: Tag) -> Optional[str]:
    return img.get('data-src') or img.get('src')


def _new_image(img: Tag, lazy: bool = False) -> Tag:
    new_img = _new_tag('img', src=_image_source(img), alt=img.get('alt') or '')
    if lazy:
        new_img['loading'] = 'lazy'
    return new_img


def _move_children(source: Tag, target: Tag) -> Tag:
    """Move (not copy) every child node of ``source`` into ``target``."""
    for child in list(source.contents):
        target.append(child.extract())
    return target


def convert_heading(widget: Tag) -> Optional[List[PageElement]]:
    """Heading widget -> bare ``<hN>`` holding only the text."""
    heading = widget.select_one('.elementor-heading-title')
    if heading is None:
        return None
    tag_name = heading.name if heading.name in HEADING_TAGS else 'h2'
    new_heading = _new_tag(tag_name)
    new_heading.string = heading.get_text().strip()
    return [new_heading]


def convert_text_editor(widget: Tag) -> Optional[List[PageElement]]:
    """Text editor widget -> ``<div>`` holding the editor's markup."""
    text = widget.select_one('.elementor-text-editor')
    if text is None:
        text = widget.select_one('.elementor-widget-container')
    if text is None:
        return None
    return [_move_children(text, _new_tag('div'))]


def convert_image(widget: Tag) -> Optional[List[PageElement]]:
    """Image widget -> ``<figure><img>[<figcaption>]</figure>``."""
    img = widget.find('img')
    if img is None or not _image_source(img):
        return None
    figure = _new_tag('figure')
    figure.append(_new_image(img))

    caption = widget.select_one('.widget-image-caption, figcaption')
    if caption is not None:
        caption_text = caption.get_text().strip()
        if caption_text:
            figcaption = _new_tag('figcaption')
            figcaption.string = caption_text
            figure.append(figcaption)
    return [figure]


def convert_video(widget: Tag) -> Optional[List[PageElement]]:
    """Video widget -> ``<div class="video-embed"><iframe loading="lazy">``."""
    iframe = widget.find('iframe')
    if iframe is None or not (iframe.get('src') or iframe.get('data-src')):
        return None
    container = _new_tag('div', **{'class': 'video-embed'})
    container.append(_new_tag(
        'iframe',
        src=iframe.get('src') or iframe.get('data-src'),
        allowfullscreen='',
        loading='lazy'
    ))
    return [container]


def convert_button(widget: Tag) -> Optional[List[PageElement]]:
    """Button widget -> ``<a class="btn btn-primary">``."""
    link = widget.find('a')
    if link is None:
        return None
    new_link = _new_tag('a', href=link.get('href', ''), **{'class': 'btn btn-primary'})
    text = widget.select_one('.elementor-button-text')
    new_link.string = (text if text is not None else link).get_text().strip()
    if link.get('target'):
        new_link['target'] = link['target']
    return [new_link]


def convert_icon_list(widget: Tag) -> Optional[List[PageElement]]:
    """Icon list widget -> ``<ul>`` of text or links (icons dropped)."""
    items = widget.select('.elementor-icon-list-item')
    if not items:
        return None
    ul = _new_tag('ul')
    for item in items:
        li = _new_tag('li')
        text = item.select_one('.elementor-icon-list-text')
        link = item.find('a')
        if link is not None:
            a = _new_tag('a', href=link.get('href', ''))
            a.string = (text if text is not None else link).get_text().strip()
            li.append(a)
        elif text is not None:
            li.string = text.get_text().strip()
        ul.append(li)
    return [ul]


def convert_accordion(widget: Tag) -> Optional[List[PageElement]]:
    """Accordion widget -> one ``<details><summary>`` per item."""
    items = widget.select('.elementor-accordion-item')
    if not items:
        return None
    nodes: List[PageElement] = []
    for item in items:
        title = item.select_one('.elementor-accordion-title') or item.select_one('.elementor-tab-title')
        content = item.select_one('.elementor-accordion-content') or item.select_one('.elementor-tab-content')

        details = _new_tag('details')
        summary = _new_tag('summary')
        summary.string = title.get_text().strip() if title is not None else ''
        details.append(summary)

        body = _new_tag('div')
        if content is not None:
            _move_children(content, body)
        details.append(body)
        nodes.append(details)
    return nodes


def convert_tabs(widget: Tag) -> Optional[List[PageElement]]:
    """Tabs widget -> ``<div class="tabs-content">`` of titled sections."""
    # Desktop and mobile title variants both carry elementor-tab-title
    titles = widget.select('.elementor-tab-desktop-title') or widget.select('.elementor-tab-title')
    contents = widget.select('.elementor-tab-content')
    if not titles:
        return None
    container = _new_tag('div', **{'class': 'tabs-content'})
    for position, title in enumerate(titles):
        section = _new_tag('section')
        heading = _new_tag('h3')
        heading.string = title.get_text().strip()
        section.append(heading)
        if position < len(contents):
            section.append(_move_children(contents[position], _new_tag('div')))
        container.append(section)
    return [container]


def convert_gallery(widget: Tag) -> Optional[List[PageElement]]:
    """Gallery widget -> ``<div class="image-gallery">`` of figures."""
    images = [img for img in widget.find_all('img') if _image_source(img)]
    if not images:
        return None
    gallery = _new_tag('div', **{'class': 'image-gallery'})
    for img in images:
        figure = _new_tag('figure')
        figure.append(_new_image(img, lazy=True))
        gallery.append(figure)
    return [gallery]


def convert_image_box(widget: Tag) -> Optional[List[PageElement]]:
    """Image box widget -> ``<article class="image-box">``."""
    img = widget.find('img')
    title = widget.select_one('.elementor-image-box-title')
    description = widget.select_one('.elementor-image-box-description')
    if (img is None or not _image_source(img)) and title is None and description is None:
        return None

    article = _new_tag('article', **{'class': 'image-box'})
    if img is not None and _image_source(img):
        figure = _new_tag('figure')
        figure.append(_new_image(img))
        article.append(figure)
    if title is not None:
        h3 = _new_tag('h3')
        h3.string = title.get_text().strip()
        article.append(h3)
    if description is not None:
        p = _new_tag('p')
        p.string = description.get_text().strip()
        article.append(p)
    return [article]


class WidgetRegistry:
    """Lookup table from widget type to converter function."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('wp_cms_migrator.converters.widget_converters')
        self.converters: Dict[str, Converter] = {}

    def register(self, widget_type: str, converter: Converter) -> None:
        """Register (or replace) the converter for a widget type."""
        self.converters[widget_type] = converter

    def supports(self, widget_type: Optional[str]) -> bool:
        return widget_type is not None and widget_type in self.converters

    def convert(self, element: Tag) -> ConversionResult:
        """
        Convert one widget element.

        Args:
            element: Element carrying a ``data-widget_type`` attribute

        Returns:
            Converted with replacement nodes, or Unrecognized when no converter
            exists or the widget's inner structure is missing
        """
        widget_type = widget_type_of(element)
        if widget_type is None:
            return Unrecognized(element, 'missing widget type')

        converter = self.converters.get(widget_type)
        if converter is None:
            return Unrecognized(element, f"no converter for widget type '{widget_type}'")

        nodes = converter(element)
        if not nodes:
            return Unrecognized(element, f"unexpected structure for widget type '{widget_type}'")
        return Converted(nodes)


def create_default_registry(logger: Optional[logging.Logger] = None) -> WidgetRegistry:
    """Registry with every built-in Elementor widget converter."""
    registry = WidgetRegistry(logger=logger)
    registry.register('heading', convert_heading)
    registry.register('text-editor', convert_text_editor)
    registry.register('image', convert_image)
    registry.register('video', convert_video)
    registry.register('button', convert_button)
    registry.register('icon-list', convert_icon_list)
    registry.register('accordion', convert_accordion)
    registry.register('tabs', convert_tabs)
    registry.register('image-gallery', convert_gallery)
    registry.register('gallery', convert_gallery)
    registry.register('image-box', convert_image_box)
    return registry


__all__ = [
    'Converted',
    'Unrecognized',
    'WidgetRegistry',
    'create_default_registry',
    'widget_type_of',
    'GENERATED_CLASSES'
]
