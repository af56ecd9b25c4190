from __future__ import annotations

# Keyword tiers are scanned in declaration order and a tier stops counting
# once its cap is hit, so reordering entries can shift borderline scores.

# weight 0.30 per hit, at most 3 hits
_HIGH_WEIGHT_KEYWORDS: tuple[str, ...] = (
    # Programming languages
    "javascript",
    "typescript",
    "python",
    "rust",
    "go",
    "golang",
    "ruby",
    "java",
    "kotlin",
    "swift",
    "c++",
    "c#",
    "php",
    "scala",
    "elixir",
    "haskell",
    "clojure",
    "zig",
    "ocaml",
    "deno",
    "bun",
    # Frameworks & Libraries
    "react",
    "vue",
    "angular",
    "next.js",
    "nextjs",
    "nuxt",
    "svelte",
    "astro",
    "rails",
    "django",
    "fastapi",
    "express",
    "hono",
    "spring",
    "laravel",
    "flutter",
    "swiftui",
    "jetpack compose",
    "remix",
    "solid.js",
    "qwik",
    "htmx",
    # Infrastructure
    "kubernetes",
    "k8s",
    "docker",
    "terraform",
    "aws",
    "gcp",
    "azure",
    "cloudflare",
    "vercel",
    "netlify",
    "eks",
    "ecs",
    "fargate",
    "lambda",
    "karpenter",
    "pulumi",
    "ansible",
    # Databases & Search
    "postgresql",
    "mysql",
    "mongodb",
    "redis",
    "elasticsearch",
    "dynamodb",
    "sqlite",
    "drizzle",
    "prisma",
    "alloydb",
    "spanner",
    "opensearch",
    "meilisearch",
    "algolia",
    "typesense",
    "fts",
    "全文検索",
    # DevOps & Tools
    "github actions",
    "ci/cd",
    "jenkins",
    "graphql",
    "rest api",
    "grpc",
    "webpack",
    "vite",
    "esbuild",
    "turborepo",
    "nx",
    "biome",
    "trpc",
    "zod",
    # AI/ML Tools
    "openai",
    "claude",
    "llm",
    "gpt",
    "gemini",
    "cursor",
    "copilot",
    "mcp",
    "langchain",
    "llamaindex",
    "huggingface",
    "ollama",
    "stable diffusion",
    # RSS & Web Crawling
    "rss",
    "atom",
    "feed",
    "クローラー",
    "crawler",
    "scraping",
    "スクレイピング",
    # Static Site & Jamstack
    "ssg",
    "jamstack",
    "hugo",
    "gatsby",
    "eleventy",
    "11ty",
    "静的サイトジェネレーター",
    "静的サイト生成",
    # WebAssembly & Edge
    "webassembly",
    "wasm",
    "edge computing",
    "edge functions",
    # 3D/Game/VR
    "unity",
    "unreal",
    "gltf",
    "vrm",
    "webgl",
    "three.js",
    # SRE & Platform
    "sre",
    "platform engineering",
    "istio",
    "envoy",
    "prometheus",
    "grafana",
    "datadog",
    # Security
    "oauth",
    "jwt",
    "oidc",
    "websocket",
    "webrtc",
)

# weight 0.15 per hit, at most 4 hits
_MEDIUM_WEIGHT_KEYWORDS: tuple[str, ...] = (
    # General tech terms (Japanese)
    "プログラミング",
    "エンジニア",
    "エンジニアリング",
    "開発",
    "実装",
    "アーキテクチャ",
    "インフラ",
    "バックエンド",
    "フロントエンド",
    "フルスタック",
    "データベース",
    "アルゴリズム",
    "デプロイ",
    "リファクタリング",
    "テスト",
    "ユニットテスト",
    "コードレビュー",
    "プルリクエスト",
    "マイクロサービス",
    "サーバーレス",
    "コンテナ",
    "仮想化",
    "クラウド",
    "機械学習",
    "ディープラーニング",
    "自然言語処理",
    "コンパイラ",
    "パフォーマンス",
    "セキュリティ",
    "脆弱性",
    "認証",
    "認可",
    # Search & Data (Japanese)
    "検索エンジン",
    "インデックス",
    "クエリ",
    "フィード",
    "アグリゲーター",
    "パーサー",
    "正規表現",
    "構文解析",
    # Web Development (Japanese)
    "静的サイト",
    "動的サイト",
    "レンダリング",
    "ハイドレーション",
    "ルーティング",
    "ミドルウェア",
    "キャッシュ",
    "cdn",
    # SRE/Platform (Japanese)
    "インシデント",
    "オンコール",
    "可観測性",
    "監視",
    "運用",
    "信頼性",
    "障害対応",
    "ポストモーテム",
    # AI/ML (Japanese)
    "生成ai",
    "プロンプト",
    "ファインチューニング",
    "ベクトル検索",
    "埋め込み",
    "rag",
    "エンベディング",
    # Git & Version Control (Japanese)
    "ブランチ",
    "マージ",
    "コンフリクト",
    "リベース",
    # General tech terms (English)
    "programming",
    "engineering",
    "development",
    "implementation",
    "architecture",
    "backend",
    "frontend",
    "fullstack",
    "database",
    "algorithm",
    "deploy",
    "refactoring",
    "testing",
    "code review",
    "pull request",
    "microservices",
    "serverless",
    "container",
    "machine learning",
    "deep learning",
    "nlp",
    "compiler",
    "performance",
    "security",
    "authentication",
    "authorization",
    # Search & Web (English)
    "search engine",
    "indexing",
    "parsing",
    "regex",
    "ast",
    "hydration",
    "ssr",
    "csr",
    "isr",
    # SRE/Platform (English)
    "incident",
    "on-call",
    "observability",
    "monitoring",
    "reliability",
    "postmortem",
    "toil",
    "slo",
    "sli",
    "error budget",
    # Version Control (English)
    "git",
    "branch",
    "merge",
    "rebase",
    "monorepo",
)

# weight 0.05 per hit, at most 5 hits
_LOW_WEIGHT_KEYWORDS: tuple[str, ...] = (
    "api",
    "sdk",
    "cli",
    "gui",
    "ui",
    "ux",
    "データ",
    "data",
    "ツール",
    "tool",
    "自動化",
    "automation",
    "効率化",
    "最適化",
    "optimization",
    "バグ",
    "bug",
    "エラー",
    "error",
    "デバッグ",
    "debug",
    "ログ",
    "log",
    "設定",
    "config",
    "環境",
    "environment",
    # Tech context indicators
    "インターン",
    "intern",
    "チーム",
    "team",
    "移行",
    "migration",
    "リリース",
    "release",
    "本番",
    "production",
    "ステージング",
    "staging",
    # Additional tech context
    "仕組み",
    "システム",
    "system",
    "サーバー",
    "server",
    "クライアント",
    "client",
    "リクエスト",
    "request",
    "レスポンス",
    "response",
    "ライブラリ",
    "library",
    "フレームワーク",
    "framework",
    "パッケージ",
    "package",
    "モジュール",
    "module",
    "関数",
    "function",
    "変数",
    "variable",
    "型",
    "type",
    "スキーマ",
    "schema",
)

# (keywords, weight per hit, max hits)
_TIERS: tuple[tuple[tuple[str, ...], float, int], ...] = (
    (_HIGH_WEIGHT_KEYWORDS, 0.30, 3),
    (_MEDIUM_WEIGHT_KEYWORDS, 0.15, 4),
    (_LOW_WEIGHT_KEYWORDS, 0.05, 5),
)

DEFAULT_TECH_THRESHOLD = 0.3


def _count_matches(text: str, keywords: tuple[str, ...], max_matches: int) -> int:
    matches = 0
    for keyword in keywords:
        if keyword in text:
            matches += 1
            if matches >= max_matches:
                break
    return matches


def tech_score(title: str, summary: str | None = None) -> float:
    """Keyword-based "how technical is this" score in [0, 1].

    Matching is plain case-insensitive substring containment.
    """

    text = f"{title or ''} {summary or ''}".lower()

    score = 0.0
    for keywords, weight, cap in _TIERS:
        score += _count_matches(text, keywords, cap) * weight
    return round(min(score, 1.0), 4)


def is_tech_post(title: str, summary: str | None = None, threshold: float = DEFAULT_TECH_THRESHOLD) -> bool:
    return tech_score(title, summary) >= threshold
