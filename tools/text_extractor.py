"""
Text Extractor Tool — turns a job detail page into the raw structured data
(headings, tables, lists, paragraphs, links) handed to the structured-extraction
service. Uses BeautifulSoup to strip irrelevant elements.
"""

import re
from urllib.parse import urljoin
from bs4 import BeautifulSoup


NOISE_TAGS = ["script", "style", "noscript", "svg", "iframe"]


def clean_text(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def load_document(html: str) -> BeautifulSoup:
    """Parse HTML and drop script/style noise so hashing and text scans ignore it."""
    soup = BeautifulSoup(html or "", "html.parser")
    for element in soup.find_all(NOISE_TAGS):
        element.decompose()
    return soup


def visible_text(soup: BeautifulSoup) -> str:
    """Body text with one line per block, for line-oriented regex scans."""
    root = soup.body or soup
    text = root.get_text(separator="\n")
    text = re.sub(r"[ \t\r\f\v]+", " ", text)
    return re.sub(r"\n\s*\n+", "\n", text).strip()


def page_title(soup: BeautifulSoup) -> str:
    title = soup.find("title")
    return clean_text(title.get_text()) if title else ""


def extract_page_data(soup: BeautifulSoup, url: str) -> dict:
    """
    Collect the salient content of a detail page.

    Returns:
        dict with url, title, headings (h1..h6), paragraphs, links,
        tables (rows of cell texts) and lists (ul/ol item texts).
    """
    data = {
        "url": url,
        "title": page_title(soup),
        "headings": {f"h{i}": [] for i in range(1, 7)},
        "paragraphs": [],
        "links": [],
        "tables": [],
        "lists": {"ul": [], "ol": []},
    }

    for level in data["headings"]:
        data["headings"][level] = [clean_text(h.get_text(" ")) for h in soup.find_all(level)]

    data["paragraphs"] = [clean_text(p.get_text(" ")) for p in soup.find_all("p")]

    for link in soup.find_all("a", href=True):
        data["links"].append({
            "text": clean_text(link.get_text(" ")),
            "href": urljoin(url, link["href"]),
        })

    for table in soup.find_all("table"):
        rows = []
        for row in table.find_all("tr"):
            rows.append([clean_text(c.get_text(" ")) for c in row.find_all(["td", "th"])])
        data["tables"].append(rows)

    for kind in ("ul", "ol"):
        for lst in soup.find_all(kind):
            items = [clean_text(li.get_text(" ")) for li in lst.find_all("li", recursive=False)]
            data["lists"][kind].append(items)

    return data


def minify_for_llm(data: dict, max_paragraphs: int = 120, max_links: int = 200) -> dict:
    """Trim page data to fit within LLM context limits."""
    return {
        "url": data.get("url", ""),
        "title": data.get("title", ""),
        "headings": data.get("headings", {}),
        "tables": data.get("tables", []),
        "lists": data.get("lists", {"ul": [], "ol": []}),
        "paragraphs": data.get("paragraphs", [])[:max_paragraphs],
        "links": [
            {"text": l["text"], "href": l["href"]}
            for l in data.get("links", [])[:max_links]
        ],
    }
