#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ProtocolWall - Protocol Library
Библиотека протоколов от экспертов по здоровью

Версия: 2.0.0
"""

from typing import Dict, List, Optional, Any

# ===== CATEGORIES =====

PROTOCOL_CATEGORIES: Dict[str, Dict[str, str]] = {
    "morning": {"id": "morning", "name": "Morning Routine", "icon": "🌅", "color": "#FF6B35"},
    "sleep": {"id": "sleep", "name": "Sleep Optimization", "icon": "😴", "color": "#4A90E2"},
    "exercise": {"id": "exercise", "name": "Exercise & Movement", "icon": "💪", "color": "#7ED321"},
    "nutrition": {"id": "nutrition", "name": "Nutrition & Hydration", "icon": "🥗", "color": "#F5A623"},
    "focus": {"id": "focus", "name": "Focus & Productivity", "icon": "🧠", "color": "#9013FE"},
    "recovery": {"id": "recovery", "name": "Recovery & Stress", "icon": "🧘", "color": "#50E3C2"},
}

AUTHOR_ICONS: Dict[str, str] = {
    "Andrew Huberman": "🧬",
    "Tim Ferriss": "📝",
    "Peter Attia": "🩺",
    "Wim Hof": "🧊",
}

def _protocol(protocol_id: str, title: str, category: str, author: str, description: str,
              benefits: List[str], instructions: List[str], difficulty: str,
              time_required: str, frequency: str = "Daily") -> Dict[str, Any]:
    return {
        "id": protocol_id,
        "title": title,
        "category": category,
        "author": author,
        "author_icon": AUTHOR_ICONS.get(author, "👤"),
        "description": description,
        "benefits": benefits,
        "instructions": instructions,
        "difficulty": difficulty,
        "time_required": time_required,
        "frequency": frequency,
    }

# ===== PROTOCOLS =====

PROTOCOL_ITEMS: List[Dict[str, Any]] = [
    # ----- morning -----
    _protocol(
        "morning-light", "Morning Light Exposure", "morning", "Andrew Huberman",
        "Get 5-30 minutes of natural sunlight exposure into your eyes within the first 30-60 minutes of waking up.",
        ["Sets circadian rhythm", "Improves mood", "Enhances energy", "Better sleep quality"],
        ["Go outside within 30-60 minutes of waking", "Get direct sunlight (not through windows)",
         "Look toward the sun (not directly at it)", "Duration: 5-30 minutes depending on weather"],
        "Easy", "5-30 minutes",
    ),
    _protocol(
        "morning-hydration", "Morning Hydration", "morning", "Andrew Huberman",
        "Drink 16-32 ounces of water immediately upon waking, often with electrolytes.",
        ["Rehydrates body", "Boosts metabolism", "Improves cognitive function", "Supports detoxification"],
        ["Drink 16-32 oz of water immediately upon waking", "Add a pinch of sea salt for electrolytes",
         "Avoid caffeine for first 90-120 minutes"],
        "Easy", "2-5 minutes",
    ),
    _protocol(
        "delayed-caffeine", "Delayed Caffeine Intake", "morning", "Andrew Huberman",
        "Wait 90-120 minutes after waking before consuming caffeine to allow natural cortisol peak.",
        ["Prevents energy crashes", "Maintains natural energy cycles", "Better long-term energy"],
        ["Wait 90-120 minutes after waking", "Allow natural cortisol and adrenaline to peak first",
         "Then consume caffeine if desired"],
        "Medium", "0 minutes (timing)",
    ),
    _protocol(
        "ferriss-morning-pages", "Morning Pages", "morning", "Tim Ferriss",
        "Write 3 pages of stream-of-consciousness writing first thing in the morning.",
        ["Clears mental clutter", "Enhances creativity", "Reduces anxiety", "Improves focus"],
        ["Write 3 pages of stream-of-consciousness", "No editing or filtering thoughts",
         "Do this before checking phone or email", "Write by hand for better cognitive benefits"],
        "Easy", "10-15 minutes",
    ),
    _protocol(
        "ferriss-5-minute-journal", "5-Minute Journal", "morning", "Tim Ferriss",
        "Structured gratitude and goal-setting practice each morning.",
        ["Increases gratitude", "Improves mood", "Sets daily intentions", "Enhances mindfulness"],
        ["Write 3 things you're grateful for", "Write 3 things that would make today great",
         "Write daily affirmation", "Keep it simple and consistent"],
        "Easy", "5 minutes",
    ),
    # ----- sleep -----
    _protocol(
        "consistent-sleep", "Consistent Sleep Schedule", "sleep", "Andrew Huberman",
        "Go to bed and wake up at the same time each day to maintain circadian rhythm.",
        ["Better sleep quality", "Improved energy", "Enhanced mood", "Stronger circadian rhythm"],
        ["Set consistent bedtime and wake time", "Maintain schedule even on weekends",
         "Allow 7-9 hours of sleep", "Create bedtime routine"],
        "Medium", "0 minutes (scheduling)",
    ),
    _protocol(
        "evening-light-avoidance", "Evening Light Management", "sleep", "Andrew Huberman",
        "Reduce bright light exposure 2-3 hours before bedtime to support melatonin production.",
        ["Better sleep onset", "Improved sleep quality", "Natural melatonin production"],
        ["Dim lights 2-3 hours before bed", "Avoid screens or use blue light filters",
         "Use warm, dim lighting in evening", "Consider candlelight or salt lamps"],
        "Easy", "0 minutes (environment)",
    ),
    _protocol(
        "attia-sleep-tracking", "Sleep Tracking & Optimization", "sleep", "Peter Attia",
        "Use data-driven approach to optimize sleep quality and duration.",
        ["Data-driven insights", "Better sleep quality", "Optimized recovery", "Improved performance"],
        ["Track sleep with wearable device", "Monitor sleep stages and duration",
         "Adjust bedtime based on data", "Optimize sleep environment"],
        "Medium", "5 minutes daily",
    ),
    # ----- exercise -----
    _protocol(
        "cold-exposure", "Cold Exposure", "exercise", "Andrew Huberman",
        "Incorporate deliberate cold exposure to increase alertness, energy, and resilience.",
        ["Increased alertness", "Enhanced energy", "Improved resilience", "Better mood"],
        ["Start with cold showers (30-60 seconds)", "Progress to cold plunges if desired",
         "Avoid immediately before/after main workout", "Start gradually and build tolerance"],
        "Hard", "2-10 minutes", "2-3x per week",
    ),
    _protocol(
        "resistance-training", "Resistance Training", "exercise", "Andrew Huberman",
        "Engage in structured resistance training for strength, muscle mass, and metabolic health.",
        ["Increased strength", "Better body composition", "Improved metabolism", "Enhanced bone density"],
        ["Focus on compound movements", "Train 2-4x per week", "Progressive overload",
         "Allow adequate recovery between sessions"],
        "Medium", "45-90 minutes", "2-4x per week",
    ),
    _protocol(
        "wim-hof-breathing", "Wim Hof Breathing Method", "exercise", "Wim Hof",
        "Controlled breathing technique to increase energy, reduce stress, and improve focus.",
        ["Increased energy", "Reduced stress", "Better focus", "Enhanced immune function"],
        ["30-40 deep breaths in rapid succession", "Hold breath after final exhale",
         "Breathe in and hold for 15 seconds", "Repeat 3-4 rounds"],
        "Medium", "10-15 minutes",
    ),
    _protocol(
        "wim-hof-cold-therapy", "Wim Hof Cold Therapy", "exercise", "Wim Hof",
        "Combined breathing and cold exposure for maximum benefits.",
        ["Enhanced resilience", "Improved immune function", "Better stress management", "Increased energy"],
        ["Practice Wim Hof breathing first", "Start with 30 seconds cold shower",
         "Gradually increase exposure time", "Focus on controlled breathing during exposure"],
        "Hard", "15-30 minutes", "3-4x per week",
    ),
    _protocol(
        "attia-zone-2-training", "Zone 2 Cardio Training", "exercise", "Peter Attia",
        "Low-intensity steady-state cardio for mitochondrial health and longevity.",
        ["Improved mitochondrial function", "Better cardiovascular health", "Enhanced fat burning",
         "Increased longevity"],
        ["Exercise at 60-70% max heart rate", "Should be able to hold conversation",
         "Duration: 45-90 minutes", "Frequency: 3-4x per week"],
        "Easy", "45-90 minutes", "3-4x per week",
    ),
    _protocol(
        "attia-vo2-max-training", "VO2 Max Training", "exercise", "Peter Attia",
        "High-intensity interval training to improve cardiovascular capacity.",
        ["Increased VO2 max", "Better cardiovascular fitness", "Enhanced performance", "Improved longevity"],
        ["4x4 minute intervals at 90-95% max heart rate", "3 minute recovery between intervals",
         "Warm up and cool down properly", "Frequency: 1-2x per week"],
        "Hard", "30-45 minutes", "1-2x per week",
    ),
    # ----- nutrition -----
    _protocol(
        "attia-intermittent-fasting", "Intermittent Fasting", "nutrition", "Peter Attia",
        "Time-restricted eating to improve metabolic health and longevity.",
        ["Improved insulin sensitivity", "Enhanced autophagy", "Better metabolic health", "Weight management"],
        ["16:8 or 18:6 eating window", "Eat within 6-8 hour window",
         "Stay hydrated during fasting", "Start gradually and adjust"],
        "Medium", "0 minutes (timing)",
    ),
    _protocol(
        "attia-protein-optimization", "Protein Optimization", "nutrition", "Peter Attia",
        "Optimize protein intake for muscle maintenance and longevity.",
        ["Muscle preservation", "Better body composition", "Improved recovery", "Enhanced longevity"],
        ["1.6-2.2g protein per kg body weight", "Distribute across 3-4 meals",
         "Include complete protein sources", "Time protein around workouts"],
        "Medium", "5-10 minutes planning",
    ),
    # ----- focus -----
    _protocol(
        "deep-focus-blocks", "Deep Focus Work Blocks", "focus", "Andrew Huberman",
        "Structure work in 90-minute focused blocks when dopamine and adrenaline naturally support focus.",
        ["Enhanced productivity", "Better quality work", "Reduced mental fatigue", "Improved learning"],
        ["Work in 90-minute focused blocks", "Minimize distractions (phone, email, social media)",
         "Take breaks between blocks", "Schedule important work during peak focus times"],
        "Medium", "90 minutes per block",
    ),
    _protocol(
        "nsdr", "Non-Sleep Deep Rest (NSDR)", "focus", "Andrew Huberman",
        "Practice NSDR techniques like Yoga Nidra to reset the mind and restore energy.",
        ["Reduced stress", "Improved focus", "Better recovery", "Enhanced mood"],
        ["Use when feeling unrested or stressed", "Practice Yoga Nidra or similar techniques",
         "Duration: 10-30 minutes", "Can be done anytime during the day"],
        "Easy", "10-30 minutes", "As needed",
    ),
    _protocol(
        "ferriss-pomodoro", "Pomodoro Technique", "focus", "Tim Ferriss",
        "Work in 25-minute focused intervals with 5-minute breaks.",
        ["Improved focus", "Better time management", "Reduced burnout", "Enhanced productivity"],
        ["Work for 25 minutes uninterrupted", "Take 5-minute break",
         "After 4 cycles, take 15-30 minute break", "Use timer to maintain discipline"],
        "Easy", "25 minutes per cycle", "As needed",
    ),
    _protocol(
        "ferriss-batching", "Task Batching", "focus", "Tim Ferriss",
        "Group similar tasks together to minimize context switching.",
        ["Reduced context switching", "Improved efficiency", "Better focus", "Less mental fatigue"],
        ["Group similar tasks together", "Schedule specific times for each batch",
         "Minimize interruptions during batches", "Review and adjust batching strategy"],
        "Easy", "Varies by task",
    ),
    # ----- recovery -----
    _protocol(
        "wim-hof-meditation", "Wim Hof Meditation", "recovery", "Wim Hof",
        "Combined breathing and meditation for stress reduction and recovery.",
        ["Reduced stress", "Better recovery", "Improved focus", "Enhanced well-being"],
        ["Practice Wim Hof breathing", "Follow with 10-20 minute meditation",
         "Focus on breath and body awareness", "Practice daily for best results"],
        "Medium", "20-30 minutes",
    ),
    _protocol(
        "attia-sleep-optimization", "Sleep Optimization Protocol", "recovery", "Peter Attia",
        "Data-driven approach to optimize sleep for recovery and performance.",
        ["Better recovery", "Improved performance", "Enhanced health", "Optimized sleep"],
        ["Track sleep with wearable device", "Optimize sleep environment",
         "Maintain consistent schedule", "Monitor and adjust based on data"],
        "Medium", "5 minutes daily",
    ),
    _protocol(
        "ferriss-meditation", "10-Minute Meditation", "recovery", "Tim Ferriss",
        "Simple 10-minute meditation practice for stress reduction and mental clarity.",
        ["Reduced stress", "Better focus", "Improved mood", "Enhanced mindfulness"],
        ["Sit comfortably for 10 minutes", "Focus on breath or body scan",
         "When mind wanders, gently return to focus", "Practice daily for consistency"],
        "Easy", "10 minutes",
    ),
]

_PROTOCOLS_BY_ID = {item["id"]: item for item in PROTOCOL_ITEMS}

# ===== LOOKUPS =====

def get_categories() -> List[Dict[str, Any]]:
    """Категории с количеством протоколов"""
    return [
        {**category, "count": sum(1 for item in PROTOCOL_ITEMS if item["category"] == category_id)}
        for category_id, category in PROTOCOL_CATEGORIES.items()
    ]

def get_protocol_by_id(protocol_id: str) -> Optional[Dict[str, Any]]:
    return _PROTOCOLS_BY_ID.get(protocol_id)

def get_authors() -> List[Dict[str, Any]]:
    authors = []
    for item in PROTOCOL_ITEMS:
        if item["author"] not in authors:
            authors.append(item["author"])

    return [
        {
            "name": author,
            "icon": AUTHOR_ICONS.get(author, "👤"),
            "count": sum(1 for item in PROTOCOL_ITEMS if item["author"] == author),
        }
        for author in authors
    ]

def search_protocols(category: Optional[str] = None, author: Optional[str] = None,
                     search: Optional[str] = None) -> List[Dict[str, Any]]:
    """Фильтрация библиотеки по категории, автору и тексту"""
    items = PROTOCOL_ITEMS

    if category:
        items = [item for item in items if item["category"] == category]

    if author:
        author_lower = author.lower()
        items = [item for item in items if item["author"].lower() == author_lower]

    if search:
        search_lower = search.lower()
        items = [
            item for item in items
            if search_lower in item["title"].lower()
            or search_lower in item["description"].lower()
            or any(search_lower in benefit.lower() for benefit in item["benefits"])
        ]

    return list(items)
