"""Internal link insertion for cluster posts, using BeautifulSoup.

LinkInjector scans HTML paragraph tags for anchor text matches and wraps
the first one in an <a> tag. Text inside existing links, headings and list
items is never touched, and paragraphs already holding
MAX_LINKS_PER_PARAGRAPH links are skipped.

For a cluster post the anchor is chosen in order:
1. first mention of a selected product's name -> product page
2. first mention of the pillar title -> pillar page
3. a new paragraph at the end of the first section -> pillar page
"""

import re
from dataclasses import dataclass

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from content_clusters.core.logging import get_logger

logger = get_logger(__name__)

MAX_LINKS_PER_PARAGRAPH = 2

FORBIDDEN_PARENTS = frozenset({"a", "h1", "h2", "h3", "li"})

FALLBACK_LEAD_TEXT = "Descubre más en nuestra guía completa: "


@dataclass
class LinkTarget:
    anchor_text: str
    url: str


@dataclass
class LinkInsertion:
    """Outcome of linking one post into the cluster."""

    html: str
    kind: str  # "product" | "pillar_title" | "fallback"
    anchor_text: str
    target_url: str
    paragraph_index: int | None


class LinkInjector:
    """Injects internal links into HTML content via anchor text matching."""

    def inject_rule_based(
        self,
        html: str,
        anchor_text: str,
        target_url: str,
    ) -> tuple[str, int | None]:
        """Wrap the first eligible match of `anchor_text` in a link.

        Matching is case-insensitive and on word boundaries; the original
        casing of the matched text is preserved.

        Returns:
            Tuple of (modified_html, paragraph_index) if injected, or
            (original_html, None) if no valid match was found.
        """
        if not anchor_text.strip():
            return html, None

        soup = BeautifulSoup(html, "html.parser")
        for p_idx, p_tag in enumerate(soup.find_all("p")):
            if self._is_at_density_limit(p_tag):
                continue
            if self._try_inject_in_element(p_tag, anchor_text, target_url):
                return str(soup), p_idx

        return html, None

    def append_fallback_paragraph(
        self, html: str, anchor_text: str, target_url: str
    ) -> tuple[str, int | None]:
        """Add a linking paragraph after the last paragraph of the first section.

        The first section runs from the first <p> up to the next <h2>; with
        no following <h2> the whole document is one section.
        """
        soup = BeautifulSoup(html, "html.parser")
        paragraphs = soup.find_all("p")
        if not paragraphs:
            return html, None

        anchor_p: Tag = paragraphs[0]
        anchor_idx = 0
        for element in paragraphs[0].find_all_next(["p", "h2"]):
            if element.name == "h2":
                break
            anchor_p = element
            anchor_idx += 1

        new_p = soup.new_tag("p")
        new_p.append(NavigableString(FALLBACK_LEAD_TEXT))
        link = soup.new_tag("a", href=target_url)
        link.string = anchor_text
        new_p.append(link)
        new_p.append(NavigableString("."))
        anchor_p.insert_after(new_p)

        return str(soup), anchor_idx + 1

    def link_post(
        self,
        html: str,
        product_targets: list[LinkTarget],
        pillar_target: LinkTarget,
    ) -> LinkInsertion | None:
        """Insert one cluster link into a post.

        Returns None when the post has no paragraph to anchor on or already
        links to the pillar page.
        """
        soup = BeautifulSoup(html, "html.parser")
        if not soup.find_all("p"):
            return None
        if any(a.get("href") == pillar_target.url for a in soup.find_all("a")):
            return None

        for target in product_targets:
            new_html, p_idx = self.inject_rule_based(html, target.anchor_text, target.url)
            if p_idx is not None:
                return LinkInsertion(new_html, "product", target.anchor_text, target.url, p_idx)

        new_html, p_idx = self.inject_rule_based(
            html, pillar_target.anchor_text, pillar_target.url
        )
        if p_idx is not None:
            return LinkInsertion(
                new_html, "pillar_title", pillar_target.anchor_text, pillar_target.url, p_idx
            )

        new_html, p_idx = self.append_fallback_paragraph(
            html, pillar_target.anchor_text, pillar_target.url
        )
        if p_idx is None:
            return None
        return LinkInsertion(
            new_html, "fallback", pillar_target.anchor_text, pillar_target.url, p_idx
        )

    def _is_at_density_limit(self, p_tag: Tag) -> bool:
        return len(p_tag.find_all("a")) >= MAX_LINKS_PER_PARAGRAPH

    def _try_inject_in_element(
        self,
        p_tag: Tag,
        anchor_text: str,
        target_url: str,
    ) -> bool:
        """Wrap the first eligible match inside `p_tag`.

        Walks the NavigableString nodes of the paragraph, skipping those
        inside forbidden elements, and splits the first matching node into
        [before, <a>, after].
        """
        pattern = re.compile(
            r"(?<!\w)" + re.escape(anchor_text) + r"(?!\w)", re.IGNORECASE
        )

        for text_node in list(p_tag.descendants):
            if not isinstance(text_node, NavigableString) or isinstance(text_node, Comment):
                continue
            if self._is_inside_forbidden(text_node):
                continue

            original_text = str(text_node)
            match = pattern.search(original_text)
            if not match:
                continue

            new_link = Tag(name="a", attrs={"href": target_url})
            new_link.string = match.group(0)

            before = original_text[: match.start()]
            after = original_text[match.end() :]
            pieces: list[NavigableString | Tag] = []
            if before:
                pieces.append(NavigableString(before))
            pieces.append(new_link)
            if after:
                pieces.append(NavigableString(after))
            text_node.replace_with(*pieces)
            return True

        return False

    def _is_inside_forbidden(self, node: NavigableString) -> bool:
        parent = node.parent
        while parent is not None:
            if isinstance(parent, Tag) and parent.name in FORBIDDEN_PARENTS:
                return True
            parent = parent.parent
        return False
