from __future__ import annotations

from typing import Protocol

import numpy as np

from blog_feed_aggregator.entities import decode_entities
from blog_feed_aggregator.scoring import tech_score
from blog_feed_aggregator.vectorize import TfidfModel, fit_tfidf

KEYWORD_WEIGHT = 0.4
ANCHOR_WEIGHT = 0.6

TECH_ANCHOR_PHRASES: tuple[str, ...] = (
    # Programming & Development
    "React TypeScript フロントエンド開発 コンポーネント実装",
    "Python 機械学習 データ分析 モデル構築",
    "Go言語 バックエンド API設計 マイクロサービス",
    "Rust システムプログラミング メモリ安全 パフォーマンス",
    # Infrastructure & DevOps
    "AWS インフラ構築 Terraform IaC デプロイ自動化",
    "Docker Kubernetes コンテナ オーケストレーション",
    "CI/CD パイプライン GitHub Actions 自動テスト",
    # Database & Architecture
    "データベース設計 SQL PostgreSQL インデックス最適化",
    "システムアーキテクチャ 設計パターン スケーラビリティ",
    # AI & ML
    "LLM プロンプトエンジニアリング RAG ベクトル検索",
    "ディープラーニング ニューラルネットワーク PyTorch",
    # Search & Data Processing
    "全文検索 FTS インデックス 検索エンジン クエリ最適化",
    "RSS Atom フィード クローラー アグリゲーター パーサー",
    "正規表現 構文解析 パーサー AST コンパイラ",
    # Web & Static Sites
    "ブログシステム 静的サイト生成 SSG Markdown Jamstack",
    "Webアプリ開発 SPA SSR ハイドレーション レンダリング",
    "WebAssembly WASM エッジコンピューティング CDN キャッシュ",
    # Developer Tools & Workflow
    "開発環境構築 エディタ設定 Vim Neovim 開発効率化",
    "Git バージョン管理 ブランチ戦略 モノレポ CI",
    "リファクタリング コード品質 静的解析 リンター フォーマッター",
    # Security & Auth
    "認証認可 OAuth JWT セッション管理 セキュリティ対策",
)

# Conference reports are deliberately absent: they count as tech articles.
NON_TECH_ANCHOR_PHRASES: tuple[str, ...] = (
    "転職 キャリア 年収 面接対策 就職活動",
    "日記 振り返り 感想 ポエム 雑記",
    "書評 読書感想 おすすめ本 レビュー",
    # Gadget & Review
    "ガジェット レビュー 買ってよかった デスクツアー 機材紹介",
    "キーボード マウス モニター イヤホン ヘッドホン",
    "旅行記 観光 グルメ 食べ歩き",
    # Non-tech business content
    "採用 求人 募集 面接 会社紹介 オフィス紹介",
    "営業 マーケティング 広報 PR プレスリリース",
)


class ScoringOracle(Protocol):
    def score(self, title: str, summary: str | None = None) -> float: ...


class AnchorSimilarityScorer:
    """Hybrid tech score: keyword tiers blended with anchor-phrase similarity.

    The text is compared (TF-IDF cosine) against representative tech and
    non-tech phrases; non-tech similarity is a penalty.
    """

    def __init__(
        self,
        tech_anchors: tuple[str, ...] = TECH_ANCHOR_PHRASES,
        non_tech_anchors: tuple[str, ...] = NON_TECH_ANCHOR_PHRASES,
    ) -> None:
        if not tech_anchors or not non_tech_anchors:
            raise ValueError("both anchor sets must be non-empty")
        anchors = list(tech_anchors) + list(non_tech_anchors)
        self._model: TfidfModel = fit_tfidf(anchors)
        X = self._model.transform(anchors)
        self._tech = X[: len(tech_anchors)]
        self._non_tech = X[len(tech_anchors) :]

    def anchor_score(self, text: str) -> float:
        v = self._model.transform([text])[0]
        max_tech = float(np.max(self._tech @ v))
        max_non_tech = float(np.max(self._non_tech @ v))
        raw = max_tech - max_non_tech * 0.5
        return float(max(0.0, min(1.0, (raw + 0.3) / 0.8)))

    def score(self, title: str, summary: str | None = None) -> float:
        keyword = tech_score(title, summary)
        anchor = self.anchor_score(decode_entities(f"{title or ''} {summary or ''}"))
        return round(keyword * KEYWORD_WEIGHT + anchor * ANCHOR_WEIGHT, 4)
